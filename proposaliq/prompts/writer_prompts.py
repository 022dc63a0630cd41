"""Prompt fragments for AI proposal section generation."""

DEFAULT_CORE_PROMPT_TEMPLATE = "Generate a {section_type} section with a {tone} tone."

# 코어 템플릿에서 치환되는 자리표시자
TEMPLATE_PLACEHOLDERS = ("section_type", "tone", "reading_level", "word_count_min", "word_count_max")

PROPOSAL_DETAILS_BLOCK = """PROPOSAL DETAILS:
- Title: {proposal_name}
- Agency: {agency_name}
- Project Title: {project_title}
- Solicitation Number: {solicitation_number}

"""

SOLICITATION_HEADER = "SOLICITATION REQUIREMENTS:"
REFERENCE_HEADER = "REFERENCE EXAMPLES FROM WINNING PROPOSALS:"
BOILERPLATE_HEADER = "APPROVED BOILERPLATE CONTENT:"
ADDITIONAL_CONTEXT_HEADER = "ADDITIONAL CONTEXT:"

FINAL_INSTRUCTION = "Now generate the {section_type} section:"
