"""
Schema Validation Unit Tests
=============================

Tests for Pydantic schema validation including:
- camelCase aliases
- Approval update constraints
- Error envelope
"""

import uuid

import pytest
from pydantic import ValidationError as PydanticValidationError

from stratikey.core.enums import ApprovalStatus
from stratikey.core.exceptions import RateLimitError, to_error_envelope
from stratikey.schemas import (
    ApprovalUpdateRequest,
    ErrorResponse,
    PermissionCheckRequest,
    SwitchOrganizationRequest,
)


pytestmark = pytest.mark.unit


class TestApprovalUpdateRequest:
    """Tests for ApprovalUpdateRequest."""

    def test_accepts_camel_case(self):
        body = ApprovalUpdateRequest.model_validate(
            {"approvalStatus": "APPROVED", "reviewNotes": "ok", "expectedVersion": 2}
        )

        assert body.approval_status == ApprovalStatus.APPROVED
        assert body.review_notes == "ok"
        assert body.expected_version == 2

    def test_optional_fields(self):
        body = ApprovalUpdateRequest.model_validate({"approvalStatus": "CHANGES_REQUESTED"})

        assert body.review_notes is None
        assert body.expected_version is None

    def test_rejects_unknown_status(self):
        with pytest.raises(PydanticValidationError):
            ApprovalUpdateRequest.model_validate({"approvalStatus": "PUBLISHED"})

    def test_rejects_non_positive_version(self):
        with pytest.raises(PydanticValidationError):
            ApprovalUpdateRequest.model_validate({"approvalStatus": "APPROVED", "expectedVersion": 0})

    def test_rejects_oversized_notes(self):
        with pytest.raises(PydanticValidationError):
            ApprovalUpdateRequest.model_validate({"approvalStatus": "APPROVED", "reviewNotes": "x" * 5001})


class TestOtherRequests:
    """Tests for organization and permission requests."""

    def test_switch_request_alias(self):
        org_id = str(uuid.uuid4())

        assert SwitchOrganizationRequest.model_validate({"organizationId": org_id}).organization_id == org_id

    def test_switch_request_requires_value(self):
        with pytest.raises(PydanticValidationError):
            SwitchOrganizationRequest.model_validate({"organizationId": ""})

    def test_permission_check_rejects_unknown_action(self):
        with pytest.raises(PydanticValidationError):
            PermissionCheckRequest.model_validate({"module": "crm", "action": "archive"})


class TestErrorEnvelope:
    """Tests for the error envelope."""

    def test_rate_limit_envelope_validates(self):
        envelope = to_error_envelope(RateLimitError(retry_after=30))

        parsed = ErrorResponse.model_validate(envelope)

        assert parsed.error.code == "RATE_LIMIT_EXCEEDED"
        assert parsed.error.details == {"retryAfter": 30}
