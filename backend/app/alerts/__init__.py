"""
alerts — Hazard alert store model and submission/query service.

Sub-modules:
    models         — Alert, HazardType, AlertSource, FeedAlertKey
    alert_service  — manual submission, radius-filtered newest-first listing
"""
