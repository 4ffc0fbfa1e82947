"""
risk — Image risk scan.

Sub-modules:
    scanner — RiskClassifier seam, random placeholder, scan service
"""
