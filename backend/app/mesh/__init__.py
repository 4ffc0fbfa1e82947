"""
mesh — Offline mesh SOS relay.

Sub-modules:
    models       — SosRecord
    sos_service  — validation, storage and radius lookup of relayed SOS
"""
