"""Prompts and JSON schemas for structured data extraction
(content-library resources and past performance records)."""

RATING_VALUES = ["Exceptional", "Very Good", "Satisfactory", "Marginal", "Unsatisfactory", "Not Applicable"]


# ==================== 리소스 추출 스키마 ====================

RESOURCE_BASE_SCHEMAS = {
    "company_certification": {
        "type": "object",
        "properties": {
            "certification_name": {"type": "string", "description": "Name of the certification"},
            "issuing_body": {"type": "string", "description": "Organization that issued the certification"},
            "certification_number": {"type": "string", "description": "Certificate number or ID"},
            "issue_date": {"type": "string", "description": "Date when certification was issued"},
            "expiration_date": {"type": "string", "description": "Date when certification expires"},
            "scope": {"type": "string", "description": "Scope or description of certification"},
        },
    },
    "past_performance_supporting_doc": {
        "type": "object",
        "properties": {
            "project_name": {"type": "string", "description": "Name of the project"},
            "contract_number": {"type": "string", "description": "Contract or award number"},
            "customer_agency": {"type": "string", "description": "Customer or agency name"},
            "contract_value": {"type": "string", "description": "Total contract value"},
            "performance_period": {"type": "string", "description": "Start and end dates"},
            "key_achievements": {"type": "string", "description": "Major accomplishments"},
        },
    },
    "key_personnel_document": {
        "type": "object",
        "properties": {
            "full_name": {"type": "string", "description": "Full name of the person"},
            "current_title": {"type": "string", "description": "Current job title"},
            "years_of_experience": {"type": "string", "description": "Total years of experience"},
            "education": {"type": "string", "description": "Educational background"},
            "certifications": {"type": "array", "items": {"type": "string"}, "description": "Professional certifications"},
            "key_skills": {"type": "array", "items": {"type": "string"}, "description": "Core competencies"},
        },
    },
}

GENERIC_RESOURCE_SCHEMA = {
    "type": "object",
    "properties": {
        "extracted_content": {"type": "string", "description": "General extracted content"},
    },
}

SCHEMA_BUILDER_PROMPT = """Based on the following description, create a JSON schema for extracting data:

Resource Type: {resource_type}
Extraction Request: {description}

Return a JSON schema object (type: "object") with appropriate properties. Each property should have:
- type: the JSON type (string, number, boolean, array, object)
- description: what this field represents

Example format:
{{
  "type": "object",
  "properties": {{
    "field_name": {{
      "type": "string",
      "description": "Description of field"
    }}
  }}
}}"""

SCHEMA_BUILDER_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "schema": {"type": "object", "description": "The generated JSON schema"},
    },
}

RESOURCE_EXTRACTION_PROMPT = """Extract the requested fields from the following document.
Omit fields that are not present in the document.

Document: {file_name}

{text}"""


# ==================== 과거 실적 추출 ====================

PAST_PERFORMANCE_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string", "description": "Project name or CPARS title"},
        "customer_agency": {"type": "string", "description": "Government agency or client name"},
        "pop_start_date": {"type": "string", "description": "Period of Performance start date (YYYY-MM-DD format)"},
        "pop_end_date": {"type": "string", "description": "Period of Performance end date (YYYY-MM-DD format)"},
        "contract_value": {"type": "number", "description": "Contract value in USD as a number"},
        "contract_value_display": {"type": "string", "description": "Human-readable contract value"},
        "place_of_performance": {"type": "string", "description": "Location where work was performed"},
        "work_scope_tags": {"type": "array", "items": {"type": "string"}, "description": "Keywords describing the work performed"},
        "project_description": {"type": "string", "description": "Detailed description of the project"},
        "key_accomplishments": {"type": "string", "description": "Key achievements and outcomes"},
        "challenges_solutions": {"type": "string", "description": "Challenges faced and solutions implemented"},
        "client_satisfaction_summary": {"type": "string", "description": "Client feedback or satisfaction indicators"},
        "sub_agency_bureau": {"type": "string", "description": "Sub-agency or bureau name"},
        "contract_number": {"type": "string", "description": "Official contract number"},
        "task_order_number": {"type": "string", "description": "Task or delivery order number"},
        "role": {"type": "string", "enum": ["prime", "subcontractor", "teaming_partner"], "description": "Organization's role on contract"},
        "contract_type": {
            "type": "string",
            "enum": ["FFP", "T&M", "CPFF", "CPAF", "IDIQ", "BPA", "Cost_Plus", "Other"],
            "description": "Type of contract",
        },
        "naics_codes": {"type": "array", "items": {"type": "string"}, "description": "NAICS codes"},
        "psc_codes": {"type": "array", "items": {"type": "string"}, "description": "Product/Service codes"},
        "small_business_program": {"type": "array", "items": {"type": "string"}, "description": "Small business designations"},
        "overall_rating": {
            "type": "string",
            "enum": RATING_VALUES[:-1] + ["Not Applicable", "Not Rated"],
            "description": "Overall CPARS rating",
        },
        "performance_ratings": {
            "type": "object",
            "properties": {
                factor: {"type": "string", "enum": RATING_VALUES}
                for factor in (
                    "quality",
                    "schedule",
                    "cost_control",
                    "management",
                    "regulatory_compliance",
                    "small_business_utilization",
                )
            },
        },
        "government_narratives": {
            "type": "object",
            "properties": {
                factor: {"type": "string"}
                for factor in (
                    "quality",
                    "schedule",
                    "cost_control",
                    "management",
                    "regulatory_compliance",
                    "small_business_utilization",
                    "overall",
                )
            },
        },
        "contractor_comments_rebuttal": {"type": "string", "description": "Contractor's response or rebuttal"},
        "ai_extracted_key_outcomes": {"type": "string", "description": "Bulleted list of key outcomes extracted by AI"},
        "ai_generated_summary": {"type": "string", "description": "Overall performance summary generated by AI"},
        "extraction_confidence": {"type": "number", "description": "Overall confidence score from 0-100 for the extraction quality"},
        "fields_extracted": {"type": "array", "items": {"type": "string"}, "description": "List of field names successfully extracted"},
    },
}

_EXTRACTION_FOOTER = """For dates, use YYYY-MM-DD format.
For contract values, extract both the numeric value and a human-readable display format.
Assign a confidence score (0-100) based on how clearly the data was present in the document.
List all fields you successfully extracted.

If a field is not present in the document, omit it from the response (do not include null values)."""

CPARS_EXTRACTION_PROMPT = f"""You are an expert at extracting structured data from CPARS (Contractor Performance Assessment Reporting System) documents.

Analyze the provided document and extract ALL available information into the specified JSON schema.

Key extraction guidelines:
- Extract all performance ratings (Exceptional, Very Good, Satisfactory, Marginal, Unsatisfactory)
- Capture government narratives for each performance factor
- Extract contract metadata (numbers, dates, values, codes)
- Identify the contractor's role (prime or subcontractor)
- Pull out key accomplishments and outcomes
- Note any contractor comments or rebuttals
- Generate a concise summary of overall performance
- Create a bulleted list of key outcomes

{_EXTRACTION_FOOTER}"""

GENERAL_PP_EXTRACTION_PROMPT = f"""You are an expert at extracting structured data from past performance references and project summaries.

Analyze the provided document and extract ALL available information into the specified JSON schema.

Key extraction guidelines:
- Extract project name/title
- Identify customer/client/agency
- Determine period of performance dates
- Extract contract value and scope
- Pull out project description and work performed
- Identify key accomplishments and outcomes
- Note any challenges and solutions
- Capture client satisfaction indicators or feedback
- Generate a concise summary of the project
- Create a bulleted list of key outcomes

{_EXTRACTION_FOOTER}"""
