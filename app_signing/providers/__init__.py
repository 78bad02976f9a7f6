"""Build service integrations.

Key Components:
    - CredentialService / BuildService: Abstract interfaces
    - RestBuildService: REST implementation of both
    - create_build_service: Factory using the loaded settings
"""
