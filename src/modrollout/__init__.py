"""modrollout — dependency-ordered module updates for Azure Automation accounts."""

__version__ = "0.3.0"
