from compliance_hub.models.audit_event import AuditEvent
from compliance_hub.models.campaign import Campaign
from compliance_hub.models.disclosure_form_template import DisclosureFormTemplate
from compliance_hub.models.disclosure_submission import DisclosureSubmission
from compliance_hub.models.organization import Organization
from compliance_hub.models.rbac import Role, UserRole
from compliance_hub.models.user import User

__all__ = [ "AuditEvent", "Campaign", "DisclosureFormTemplate",
           "DisclosureSubmission", "Organization", "Role", "UserRole", "User" ]
