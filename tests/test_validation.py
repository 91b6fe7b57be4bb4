"""
Tests for validation predicates and step payloads.
"""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from pipeelo_onboarding.contracts.payloads import ApiConfigPayload, AssistantsPayload, TenantStepPayload
from pipeelo_onboarding.validation import (
    digits_only,
    format_cep,
    format_cnpj,
    format_cpf,
    is_valid_cep,
    is_valid_cnpj,
    is_valid_cpf,
    is_valid_email,
    is_valid_uuid,
    password_strength_feedback,
)


class TestPredicates:
    """Tests for the plain validation predicates."""

    def test_digits_only(self):
        """Test stripping formatting."""
        assert digits_only("12.345.678/0001-90") == "12345678000190"
        assert digits_only(None) == ""

    def test_documents(self):
        """Test document length checks on formatted input."""
        assert is_valid_cnpj("12.345.678/0001-90") is True
        assert is_valid_cnpj("1234") is False
        assert is_valid_cpf("123.456.789-09") is True
        assert is_valid_cpf("12345678909000") is False
        assert is_valid_cep("01000-000") is True
        assert is_valid_cep("0100") is False

    def test_email(self):
        """Test email shape check."""
        assert is_valid_email("maria@acme.com.br") is True
        assert is_valid_email("maria@acme") is False
        assert is_valid_email("") is False

    def test_uuid(self):
        """Test generated identifier detection."""
        assert is_valid_uuid(uuid4()) is True
        assert is_valid_uuid(str(uuid4())) is True
        assert is_valid_uuid("assistant_123") is False
        assert is_valid_uuid(None) is False

    def test_formatting(self):
        """Test display formatting."""
        assert format_cnpj("12345678000190") == "12.345.678/0001-90"
        assert format_cpf("12345678909") == "123.456.789-09"
        assert format_cep("01000000") == "01000-000"

    def test_password_strength(self):
        """Test password feedback."""
        assert password_strength_feedback("Sup3rSecret") == []
        assert len(password_strength_feedback("abc")) == 3


class TestPayloads:
    """Tests for step payload validation."""

    def test_tenant_payload_valid(self, tenant_payload):
        """Test a complete step 1 payload."""
        payload = TenantStepPayload.model_validate(tenant_payload)
        assert payload.address.country == "BR"

    def test_tenant_payload_rejects_bad_document(self, tenant_payload):
        """Test CNPJ check."""
        tenant_payload["tenant"]["document"] = "123"
        with pytest.raises(ValidationError):
            TenantStepPayload.model_validate(tenant_payload)

    def test_tenant_payload_rejects_short_password(self, tenant_payload):
        """Test admin password length."""
        tenant_payload["user"]["password"] = "short"
        with pytest.raises(ValidationError):
            TenantStepPayload.model_validate(tenant_payload)

    def test_api_payload_requires_a_key(self):
        """Test that at least one provider key is required."""
        with pytest.raises(ValidationError):
            ApiConfigPayload.model_validate({})
        assert ApiConfigPayload(openrouter_key="sk-or").openai_key is None

    def test_assistants_payload_requires_one(self):
        """Test empty assistant list."""
        with pytest.raises(ValidationError):
            AssistantsPayload.model_validate({"assistants": []})
