"""GH validation test suite.

This package contains validation tests checking the mathematical properties
of the Gromov-Hausdorff constructions on random finite metric spaces.

Test Modules:
- test_gh_mathematical_properties: Mathematical correctness validation
"""

__all__ = [
    'test_gh_mathematical_properties',
]
