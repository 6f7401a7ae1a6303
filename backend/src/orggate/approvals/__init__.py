"""Approval workflow: time-boxed human approval of higher-risk capability invocations."""
