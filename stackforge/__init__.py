"""stackforge -- turn an empty web application skeleton into a runnable
web + worker + database + broker stack."""

__version__ = "0.1.0"
