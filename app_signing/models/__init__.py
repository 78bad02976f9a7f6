"""Core domain models for signing-credential resolution.

Key Models:
    - CredentialIdentity: App identity used as the key for every remote call
    - SlotSpec / SlotField: Static definition of a credential slot
    - CredentialSlot: One resolved (or missing) credential slot
    - CredentialBundle: All slots for one identity
    - ResolutionContext: Immutable input of every resolution decision
    - BuildOptions: Options for one resolution run

Example:
    >>> from app_signing.models.domain import CredentialBundle, CredentialIdentity
    >>> bundle = CredentialBundle.empty(identity)
"""
