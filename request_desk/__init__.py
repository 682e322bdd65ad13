"""Role-scoped service request tracker core"""

__version__ = "1.0.0"
