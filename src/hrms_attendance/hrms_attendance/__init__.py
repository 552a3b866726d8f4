"""HRMS attendance client package.

Organized by feature modules (auth, attendance) with a thin Flask controller
layer over services that talk to the HRMS REST backend.
"""
