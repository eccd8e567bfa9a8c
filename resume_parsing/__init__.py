"""Resume text helpers used during onboarding."""
from .contact import ContactDetails, extract_contact_details, validate_candidate_info

__all__ = ["ContactDetails", "extract_contact_details", "validate_candidate_info"]
