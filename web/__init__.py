"""HTTP adapter for the request desk core"""
