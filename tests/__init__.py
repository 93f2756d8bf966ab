"""
attestkit Test Suite
====================

Test organization:
- tests/unit/                - Unit tests (fake prover, no snarkjs)
- tests/services/verifier/   - Verifier service API tests

Run tests:
    pytest                          # All tests
    pytest tests/unit               # Unit tests only
    pytest --cov=attestkit          # With coverage
"""
