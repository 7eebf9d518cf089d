"""Document templates and placeholder substitution.

Templates are keyed by document type and language; a missing language falls
back to English, a missing type yields ``TEMPLATE_NOT_AVAILABLE`` as ordinary
content. Placeholders are bracketed upper-case tokens such as
``[MONTHLY_RENT]``; a field ``monthly_rent`` fills every occurrence, and
tokens without a matching field are left as they are.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Tuple
import re

from ..domain.document_models import DocumentTypeInfo
from .ai_gateway import AIGateway, PromptContext
from .context_builder import render_prompt


FALLBACK_LANGUAGE = "en"

TEMPLATE_NOT_AVAILABLE = (
    "Document template not available. Please specify a valid document type (rent_agreement, nda, etc.)"
)

# Fixed pattern; field keys are only ever compared against the captured token
PLACEHOLDER_PATTERN = re.compile(r"\[([^\[\]\n]+)\]")

DOCUMENT_TYPES: Tuple[DocumentTypeInfo, ...] = (
    DocumentTypeInfo(id="rent_agreement", name="Rent Agreement", category="property"),
    DocumentTypeInfo(id="nda", name="Non-Disclosure Agreement", category="business"),
    DocumentTypeInfo(id="employment_contract", name="Employment Contract", category="employment"),
    DocumentTypeInfo(id="loan_agreement", name="Loan Agreement", category="finance"),
    DocumentTypeInfo(id="partnership_deed", name="Partnership Deed", category="business"),
    DocumentTypeInfo(id="sale_deed", name="Sale Deed", category="property"),
    DocumentTypeInfo(id="power_of_attorney", name="Power of Attorney", category="legal"),
    DocumentTypeInfo(id="affidavit", name="Affidavit", category="legal"),
    DocumentTypeInfo(id="will", name="Will/Testament", category="legal"),
    DocumentTypeInfo(id="divorce_petition", name="Divorce Petition", category="family"),
)


TEMPLATES: Dict[str, Dict[str, str]] = {
    "rent_agreement": {
        "en": """RENTAL AGREEMENT

This Rental Agreement is made on [DATE] between:

LANDLORD: [LANDLORD_NAME]
Address: [LANDLORD_ADDRESS]

TENANT: [TENANT_NAME]
Address: [TENANT_ADDRESS]

PROPERTY DETAILS:
Address: [PROPERTY_ADDRESS]
Type: [PROPERTY_TYPE]
Area: [PROPERTY_AREA]

TERMS AND CONDITIONS:

1. RENT: Rs. [MONTHLY_RENT] per month
2. SECURITY DEPOSIT: Rs. [SECURITY_DEPOSIT]
3. LEASE PERIOD: [LEASE_DURATION] months
4. MAINTENANCE: [MAINTENANCE_CLAUSE]

Both parties agree to the above terms and conditions.

Landlord Signature: ________________
Tenant Signature: ________________

Note: This is a basic template. Please consult a lawyer for comprehensive drafting.""",
        "hi": """किराया समझौता

यह किराया समझौता [DATE] को निम्नलिखित के बीच किया गया है:

मकान मालिक: [LANDLORD_NAME]
पता: [LANDLORD_ADDRESS]

किरायेदार: [TENANT_NAME]
पता: [TENANT_ADDRESS]

संपत्ति का विवरण:
पता: [PROPERTY_ADDRESS]
प्रकार: [PROPERTY_TYPE]

नियम और शर्तें:
1. किराया: रु. [MONTHLY_RENT] प्रति माह
2. सिक्यूरिटी डिपॉजिट: रु. [SECURITY_DEPOSIT]

कृपया व्यापक मसौदा तैयार करने के लिए एक वकील से सलाह लें।""",
    },
    "nda": {
        "en": """NON-DISCLOSURE AGREEMENT (NDA)

This Agreement is entered into on [DATE] between:

DISCLOSING PARTY: [COMPANY_NAME]
RECEIVING PARTY: [RECIPIENT_NAME]

1. CONFIDENTIAL INFORMATION
The Receiving Party acknowledges that confidential information includes [CONFIDENTIAL_INFO_DESCRIPTION].

2. OBLIGATIONS
The Receiving Party agrees to:
- Maintain strict confidentiality
- Use information solely for [PURPOSE]
- Not disclose to third parties

3. TERM: This agreement remains in effect for [DURATION] years.

4. GOVERNING LAW: This agreement is governed by Indian law.

Disclosing Party: ________________
Receiving Party: ________________

Please consult a legal professional for complete NDA drafting.""",
    },
    "employment_contract": {
        "en": """EMPLOYMENT CONTRACT

This Employment Contract is made on [DATE] between:

EMPLOYER: [EMPLOYER_NAME], having its office at [EMPLOYER_ADDRESS]
EMPLOYEE: [EMPLOYEE_NAME], residing at [EMPLOYEE_ADDRESS]

1. POSITION: The Employee is appointed as [DESIGNATION] with effect from [START_DATE].
2. PROBATION: The first [PROBATION_PERIOD] months shall be a probation period.
3. COMPENSATION: Rs. [MONTHLY_SALARY] per month, payable on or before the [PAY_DAY] of each month.
4. WORKING HOURS: [WORKING_HOURS] hours per week.
5. LEAVE: [ANNUAL_LEAVE] days of paid leave per year.
6. NOTICE PERIOD: Either party may terminate this contract with [NOTICE_PERIOD] days' written notice.
7. CONFIDENTIALITY: The Employee shall not disclose confidential information of the Employer.
8. GOVERNING LAW: This contract is governed by the laws of India.

Employer Signature: ________________
Employee Signature: ________________

Note: This is a basic template. Please consult a lawyer for comprehensive drafting.""",
    },
    "affidavit": {
        "en": """AFFIDAVIT

I, [DEPONENT_NAME], son/daughter/wife of [PARENT_OR_SPOUSE_NAME], aged [AGE] years,
residing at [ADDRESS], do hereby solemnly affirm and declare as under:

1. That I am a citizen of India and competent to swear this affidavit.
2. That [STATEMENT_OF_FACTS].
3. That the contents of this affidavit are true and correct to the best of my knowledge and belief
   and nothing material has been concealed therefrom.

Deponent: ________________

VERIFICATION
Verified at [PLACE] on [DATE] that the contents of the above affidavit are true and correct.

Deponent: ________________

Note: An affidavit must be attested by a Notary or Oath Commissioner.""",
    },
}


def document_types() -> List[DocumentTypeInfo]:
    return list(DOCUMENT_TYPES)


def placeholders(template: str) -> List[str]:
    """Distinct placeholder tokens in order of first appearance."""
    seen: Dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(template):
        seen.setdefault(match.group(1), None)
    return list(seen)


def field_text(value: object) -> str:
    """Render a field value the way it reads in JSON: ``true``, ``15000``, ``2.5``."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def fill_placeholders(template: str, fields: Mapping[str, object]) -> str:
    """Replace ``[KEY]`` with ``fields[key]`` in one pass; unknown tokens stay untouched.

    Only tokens already present in the template are looked up, so field keys
    never take part in matching.
    """
    if not fields:
        return template
    supplied = {str(key).upper(): value for key, value in fields.items()}
    values = {token: field_text(supplied[token]) for token in placeholders(template) if token in supplied}
    if not values:
        return template
    return PLACEHOLDER_PATTERN.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def lookup_template(doc_type: str, language: str) -> Optional[str]:
    variants = TEMPLATES.get(doc_type)
    if not variants:
        return None
    return variants.get(language) or variants.get(FALLBACK_LANGUAGE)


class DocumentTemplateEngine:
    def __init__(self, ai: AIGateway) -> None:
        self._ai = ai

    def render_template(self, doc_type: str, language: str, fields: Optional[Mapping[str, object]] = None) -> str:
        template = lookup_template(doc_type, language)
        if template is None:
            return TEMPLATE_NOT_AVAILABLE
        return fill_placeholders(template, fields or {})

    def generate_freeform(self, doc_type: str, language: str, description: str) -> str:
        request = f"Generate a {doc_type} document template based on this description: {description}"
        context = PromptContext(
            prompt=render_prompt(request, "document_draft"),
            language=language,
            kind="document_draft",
        )
        return self._ai.generate(context)

    def draft(
        self,
        doc_type: str,
        language: str,
        description: Optional[str] = None,
        fields: Optional[Mapping[str, object]] = None,
    ) -> str:
        if description:
            return self.generate_freeform(doc_type, language, description)
        return self.render_template(doc_type, language, fields)
