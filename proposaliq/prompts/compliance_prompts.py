"""Prompts for compliance requirement auto-mapping."""

COMPLIANCE_MAPPING_PROMPT = """Map each compliance requirement to the most appropriate proposal section(s) based on section type and requirement type.

**SECTIONS:**
{sections_json}

**REQUIREMENTS (Batch {batch_number}/{total_batches}):**
{requirements_json}

Return JSON:
{{
  "mappings": [
    {{
      "requirement_id": "string",
      "section_ids": ["string"],
      "cross_reference": "string (e.g., 'See Section 3.2')",
      "confidence": 85
    }}
  ]
}}"""


COMPLIANCE_MAPPING_SCHEMA = {
    "type": "object",
    "properties": {
        "mappings": {"type": "array"},
    },
}
