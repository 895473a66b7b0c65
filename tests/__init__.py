"""
Test Suite

    tests/
    ├── conftest.py                # mongomock database, org chart, tokens
    ├── test_ledger.py             # submission, decisions, cancellation
    ├── test_workflow_service.py   # workflow and step configuration
    ├── test_delegation.py         # delegations and delegated authority
    └── test_api.py                # /api/v1/hr endpoints

To run tests:
    pytest tests/
"""
