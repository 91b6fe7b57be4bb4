"""Pipeelo provisioning provider."""

from pipeelo_onboarding.providers.pipeelo.client import PipeeloProvisioningClient
from pipeelo_onboarding.providers.pipeelo.csrf import read_csrf_token

__all__ = [
    "PipeeloProvisioningClient",
    "read_csrf_token",
]
