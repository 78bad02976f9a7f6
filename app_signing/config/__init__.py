"""Configuration for app-signing.

Key Components:
    - AppSigningSettings: Service connection, account and build defaults with
      YAML loading and ``APPSIGN_`` environment overrides
    - ProjectConfig: App metadata read from ``app.json``

Example:
    >>> from app_signing.config.settings import AppSigningSettings
    >>> settings = AppSigningSettings.from_yaml("~/.appsign/config.yaml")
    >>> settings.service.base_url
"""
