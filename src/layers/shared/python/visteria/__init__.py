"""Visteria: self-hosted page-view analytics on DynamoDB."""

__version__ = "0.1.0"
