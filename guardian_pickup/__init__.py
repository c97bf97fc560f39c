"""
Guardian pickup credentials: pickup tokens, guardian login and the device-side
session cache.
"""
