# =============================================================================
# POLYEDGE ANALYTICS - TEST SUITE
# =============================================================================
#
# Structure:
#   tests/
#     unit/           - Unit tests per core module
#     integration/    - Full pipeline and CLI
#
# Usage:
#   pytest                       # All tests
#   pytest tests/unit/           # Unit tests only
#   python run_tests.py --quick  # Smoke test
#
# =============================================================================
