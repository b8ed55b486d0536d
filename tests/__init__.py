"""Test suite for Neurosheaf.

This package contains comprehensive tests for the Neurosheaf framework,
organized by test type and development phase.

Structure:
- unit/: Unit tests for individual components
- integration/: Integration tests for component interactions
- performance/: Performance and benchmarking tests

Test Categories:
- phase1: Foundation tests (utils, logging, exceptions, profiling)
- phase2: CKA implementation tests
- phase3: Sheaf construction tests
- phase4: Spectral analysis tests
- phase5: Visualization tests
"""