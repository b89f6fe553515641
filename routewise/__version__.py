__title__ = "routewise"
__version__ = "0.1.0"
