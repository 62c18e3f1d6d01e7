"""Moya List: question and idea capture list."""

__version__ = "0.1.0"
