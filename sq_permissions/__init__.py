"""Bulk visibility and permission template updates for SonarQube projects."""

__version__ = "1.0.0"
