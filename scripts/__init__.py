"""
Backend Scripts Module

Utility scripts for database setup and maintenance.

Available scripts:
    - seed_data.py: Creates a sample org chart and default validation workflows
    - check_workflow.py: Prints a workflow and reports step-order problems

Usage:
    python -m scripts.seed_data
    python -m scripts.check_workflow <workflow_id>
"""
