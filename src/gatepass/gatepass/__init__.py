"""Gate Pass Ledger package.

Organized by feature modules (directory, gate_passes) with a thin Flask
controller layer on top of service/repository layers.
"""
