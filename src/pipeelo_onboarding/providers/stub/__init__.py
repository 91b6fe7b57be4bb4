"""Stub provisioning provider for development."""

from pipeelo_onboarding.providers.stub.client import StubProvisioningProvider

__all__ = ["StubProvisioningProvider"]
