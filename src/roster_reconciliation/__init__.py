"""Roster & attendance reconciliation engine.

The package is organized by feature modules (roster, attendance, requests,
reconciliation, ...) with a thin Flask controller layer over service and
record-store layers.
"""
