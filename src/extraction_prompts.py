"""
extraction_prompts.py

Per document type: the instruction sent to Gemini, the JSON fields expected
back, and whether the model may use Google Search to look the company up.
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from src.config import DEFAULT_REPORT_YEAR
from src.models import DocType


@dataclass(frozen=True)
class ExtractionSpec:
    prompt: str
    # JSON key -> short description for the model
    fields: Tuple[Tuple[str, str], ...]
    use_search: bool = False

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.fields)

    def response_schema(self) -> Dict[str, Any]:
        """OpenAPI-style schema accepted by GenerationConfig.response_schema."""
        properties = {}
        for name, description in self.fields:
            prop = {"type": "STRING"}
            if description:
                prop["description"] = description
            properties[name] = prop
        return {"type": "OBJECT", "properties": properties}

    def full_prompt(self) -> str:
        keys = ", ".join(f'"{name}"' for name in self.field_names)
        return (
            f"{self.prompt.strip()}\n\n"
            f"Output ONLY a valid JSON object with the keys {keys}. "
            "Use strings for every value and an empty string when a value is not found. "
            "Do NOT wrap the JSON in markdown code fences."
        )


REGISTRATION_PROMPT = """
1. Extract the 'Tax ID' (Mã số thuế) and 'Company Name' (Tên công ty) from the document.
2. Use the Google Search tool to search for the Tax ID on "masothue.com".
3. On the masothue.com page, locate the specific row or field labeled "Ngành nghề chính" (Main Business Line).
4. EXTRACT the EXACT full text content of this field.
   - Do not look for a table of multiple industries. Look for the specific field explicitly labeled "Ngành nghề chính".
   - Copy the content exactly, including the "Chi tiết:" (Detail) part if it exists (e.g., "Bán buôn... Chi tiết: ...").
5. Return the Company Name, Tax ID, and this full Business Line string.
"""

PRIOR_YEAR_PROMPT = """
Extract the Net Revenue (Doanh thu thuần) or Total Revenue (Tổng doanh thu) for {year}
from the Income Statement (Báo cáo kết quả kinh doanh).
Return just the number or string representation of the money.
"""

CURRENT_YEAR_PROMPT = """
Extract data from the Income Statement (Báo cáo kết quả kinh doanh) for {year}:
1. Net Revenue (Doanh thu thuần) or Total Revenue (Tổng doanh thu).
2. Net Profit after tax (Lợi nhuận sau thuế). Keep the sign if it is a loss.
Return the exact numbers or strings found.
"""

VAT_PROMPT = """
Extract the value from target [34] - Total Revenue (Tổng doanh thu) from this VAT declaration
(Tờ khai thuế GTGT) for period {period} of {year}.
"""


def financial_years(report_year: int = DEFAULT_REPORT_YEAR) -> Tuple[int, int]:
    """(prior year, current year) of the financial statements for a VAT report year."""
    return report_year - 2, report_year - 1


def get_extraction_spec(doc_type: DocType, report_year: int = DEFAULT_REPORT_YEAR) -> ExtractionSpec:
    doc_type = DocType(doc_type)
    prior_year, current_year = financial_years(report_year)

    if doc_type is DocType.REGISTRATION:
        return ExtractionSpec(
            prompt=REGISTRATION_PROMPT,
            fields=(
                ("companyName", ""),
                ("taxId", ""),
                ("businessLine", "The complete text of the main business line."),
            ),
            use_search=True,
        )
    if doc_type is DocType.FINANCIAL_PRIOR_YEAR:
        return ExtractionSpec(
            prompt=PRIOR_YEAR_PROMPT.format(year=prior_year),
            fields=(("revenue", ""),),
        )
    if doc_type is DocType.FINANCIAL_CURRENT_YEAR:
        return ExtractionSpec(
            prompt=CURRENT_YEAR_PROMPT.format(year=current_year),
            fields=(
                ("revenue", ""),
                ("netProfitOrLoss", "Lợi nhuận sau thuế (Profit after tax)"),
            ),
        )
    return ExtractionSpec(
        prompt=VAT_PROMPT.format(period=doc_type.period, year=report_year),
        fields=(("revenue", ""),),
    )
