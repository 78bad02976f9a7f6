"""Signing-credential resolution.

Key Components:
    - slots: Per-platform catalogue of credential slots
    - sources: Environment, operator-supplied and managed value sources
    - resolver: ``next_action`` and ``CredentialSlotResolver`` for one slot
    - orchestrator: Full-bundle resolution for a platform
    - clear: Confirmed deletion of stored credentials
    - backup: Local copy of the stored Android keystore
    - environment_backend / keyring_backend / token: Environment snapshot and
      the build service API token
"""
