"""
visa_config.py - Visa catalogue

Country -> visa type -> document requirements and historical statistics.
Used by the document validator and the scoring engine.
"""

from typing import Any, Dict, List, Optional

TEST_COUNTRY = "Test"

VISA_CONFIG: Dict[str, Dict[str, Any]] = {
    "United States": {
        "code": "US",
        "visas": {
            "B1/B2 Tourism": {
                "requiredDocuments": ["Passport", "DS-160 Confirmation", "Bank Statement"],
                "optionalDocuments": ["Travel Itinerary", "Employment Letter"],
                "successRate": 74,
                "processingTime": "3-5 weeks",
            },
            "F1 Student": {
                "requiredDocuments": ["Passport", "I-20", "Bank Statement", "Transcript"],
                "optionalDocuments": ["Scholarship Letter", "Test Scores"],
                "successRate": 80,
                "processingTime": "2-4 weeks",
            },
            "H1B Work": {
                "requiredDocuments": ["Passport", "Job Offer", "Degree Certificate", "Resume"],
                "optionalDocuments": ["Reference Letter"],
                "successRate": 68,
                "processingTime": "3-6 months",
            },
        },
    },
    "Canada": {
        "code": "CA",
        "visas": {
            "Visitor Visa": {
                "requiredDocuments": ["Passport", "Bank Statement", "Photo"],
                "optionalDocuments": ["Invitation Letter", "Travel Itinerary"],
                "successRate": 78,
                "processingTime": "4-8 weeks",
            },
            "Study Permit": {
                "requiredDocuments": ["Passport", "Acceptance Letter", "Bank Statement"],
                "optionalDocuments": ["Statement of Purpose", "Language Test"],
                "successRate": 85,
                "processingTime": "6-10 weeks",
            },
            "Express Entry": {
                "requiredDocuments": ["Passport", "Language Test", "Degree Certificate", "Police Certificate"],
                "optionalDocuments": ["Job Offer", "Provincial Nomination"],
                "successRate": 72,
                "processingTime": "6 months",
            },
        },
    },
    "United Kingdom": {
        "code": "GB",
        "visas": {
            "Visitor Visa": {
                "requiredDocuments": ["Passport", "Bank Statement"],
                "optionalDocuments": ["Accommodation Booking", "Employment Letter"],
                "successRate": 88,
                "processingTime": "3 weeks",
            },
            "Work Visa": {
                "requiredDocuments": ["Passport", "Certificate of Sponsorship", "English Test"],
                "optionalDocuments": ["Degree Certificate"],
                "successRate": 82,
                "processingTime": "3-8 weeks",
            },
        },
    },
    "Germany": {
        "code": "DE",
        "visas": {
            "Schengen Tourist Visa": {
                "requiredDocuments": ["Passport", "Travel Insurance", "Bank Statement", "Photo"],
                "optionalDocuments": ["Hotel Booking", "Flight Reservation"],
                "successRate": 90,
                "processingTime": "2 weeks",
            },
            "EU Blue Card": {
                "requiredDocuments": ["Passport", "Employment Contract", "Degree Certificate"],
                "optionalDocuments": ["Health Insurance", "Resume"],
                "successRate": 86,
                "processingTime": "4-12 weeks",
            },
        },
    },
    TEST_COUNTRY: {
        "code": "XX",
        "visas": {
            "X": {
                "requiredDocuments": ["Resume", "Passport"],
                "optionalDocuments": ["Cover Letter"],
                "successRate": 80,
                "processingTime": "1 week",
            },
        },
    },
}


def is_test_country(country: Optional[str]) -> bool:
    return (country or "").strip().lower() == TEST_COUNTRY.lower()


def get_visa_config(country: Optional[str], visa_type: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the visa entry for a country/visa pair, or None if unknown."""
    country_cfg = VISA_CONFIG.get(country or "")
    if not country_cfg:
        return None
    return country_cfg["visas"].get(visa_type or "")


def required_documents(country: Optional[str], visa_type: Optional[str]) -> List[str]:
    visa = get_visa_config(country, visa_type)
    return list(visa.get("requiredDocuments", [])) if visa else []


def optional_documents(country: Optional[str], visa_type: Optional[str]) -> List[str]:
    visa = get_visa_config(country, visa_type)
    return list(visa.get("optionalDocuments", [])) if visa else []
