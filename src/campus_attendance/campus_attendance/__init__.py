"""Campus attendance package.

Organized by feature modules (attendance, corrections, reports, ...) with a
thin Flask controller layer over service/repository layers.
"""
