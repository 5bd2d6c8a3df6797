"""Wirehead: interactive evolution of image prompts rated by humans."""

__version__ = "0.1.0"
