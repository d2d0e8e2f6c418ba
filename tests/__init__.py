"""
Stereo Match Test Suite

Tests for epipolar matching of interest points between two calibrated views.

Structure:
- unit/: Unit tests for geometry, scoring, association, extraction, config
- integration/: End-to-end pipeline tests on synthetic scenes and images
- conftest.py: shared synthetic camera rig and scene
"""
