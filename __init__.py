"""
Loan Pool Intake

Automates ingestion and validation of loan pool spreadsheets: each file in the
incoming directory is mapped to a pool template, populated, transformed,
checked against a zero-reconciling check column and routed to the ready or
rejects directory.

Key modules:
- pool_processor.py: Per-file stages and the run loop
- main.py: FastAPI application with API endpoints
- cli.py: Command line entry point
- utils/result.py: Result pattern implementation for stage outcomes
"""
