"""Reconciliation of local definitions with the control plane."""
