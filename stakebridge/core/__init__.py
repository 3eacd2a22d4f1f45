"""Workflow core: planning, quoting, call building and batch execution."""
