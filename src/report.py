"""
    03 report

report.py

Builds the business profile summary from an AppState and renders it as an HTML
fragment, plain text (for copying) and a standalone downloadable HTML file.

Main entrypoint: build_report(state, report_year) -> List[ReportLine]
"""

import html
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Sequence, Tuple

import pandas as pd

from src.config import DEFAULT_REPORT_YEAR
from src.extraction_prompts import financial_years
from src.models import (
    MONTHS,
    QUARTERS,
    SOFTWARE_OPTIONS,
    AppState,
    BankRecord,
    ExtractedData,
    ManualData,
)
from src.money import (
    NOT_PROVIDED,
    ZERO,
    format_currency,
    format_money_input,
    format_total,
    parse_amount,
    parse_money,
)

REPORT_TITLE = "TỔNG HỢP THÔNG TIN DOANH NGHIỆP"
DOCUMENT_TITLE = "Báo Cáo Doanh Nghiệp"
PLACEHOLDER = "...................."
DEBT_UNIT = "Tỷ"

IMPORT_EXPORT_LABELS = {
    "nhap_khau": "Có nhập khẩu",
    "xuat_khau": "Có xuất khẩu",
    "ca_hai": "Cả hai",
    "khong": "Không",
}
YES_NO_LABELS = {"co": "Có", "khong": "Không"}
MEMBER_BAD_DEBT_LABELS = {"co_mot_nguoi": "Có", "khong": "Không", "khong_ro": "Không rõ"}

STANDALONE_STYLE = """
body { font-family: sans-serif; padding: 20px; line-height: 1.6; }
strong { color: #333; }
ul { list-style-type: none; padding: 0; }
li { margin-bottom: 8px; }
h3 { text-align: center; border-bottom: 1px solid #ddd; padding-bottom: 8px; }
.total { color: #dc2626; font-weight: bold; }
.list-disc { list-style-type: disc; padding-left: 20px; }
.list-circle { list-style-type: circle; padding-left: 20px; }
"""

PREVIEW_STYLE = """
body { font-family: sans-serif; padding: 20px; color: #333; line-height: 1.5; }
strong { color: #000; }
ul { list-style-type: none; padding-left: 0; }
li { margin-bottom: 8px; }
.total { color: #dc2626; font-weight: bold; }
.list-disc { list-style-type: disc; padding-left: 20px; }
.list-circle { list-style-type: circle; padding-left: 20px; }
"""

DEBT_COLUMNS = ["Đối tượng", "Ngân hàng", "Số tiền (Tỷ)"]


@dataclass(frozen=True)
class ReportLine:
    label: str
    value: str = ""
    highlight: bool = False  # value is an aggregate worth drawing attention to
    detail: str = ""
    children: Tuple[str, ...] = ()
    list_class: str = "list-disc"


# -------------------------------
# Aggregates
# -------------------------------

def detailed_banks(banks: Iterable[BankRecord]) -> List[BankRecord]:
    """Rows with a chosen bank and a nonzero amount; only these get detail lines."""
    return [b for b in banks if b.bank_name and parse_amount(b.amount) != 0]


def sum_bank_amounts(banks: Iterable[BankRecord]) -> Decimal:
    return sum((parse_amount(b.amount) for b in banks), ZERO)


def corporate_debt_total(manual: ManualData) -> Decimal:
    return sum_bank_amounts(manual.corporate_banks)


def personal_debt_total(manual: ManualData) -> Decimal:
    return sum((sum_bank_amounts(m.banks) for m in manual.personal_debts), ZERO)


def vat_periods(frequency: str) -> Tuple[str, ...]:
    return MONTHS if frequency == "monthly" else QUARTERS


def vat_revenue_total(extracted: ExtractedData, frequency: str = "quarterly") -> Decimal:
    return sum((parse_money(extracted.vat_revenue(p)) for p in vat_periods(frequency)), ZERO)


def format_debt_total(total: Decimal) -> str:
    return format_total(total, DEBT_UNIT)


def format_vat_total(total: Decimal) -> str:
    if total <= 0:
        return NOT_PROVIDED
    return f"{format_money_input(total)} VNĐ"


def period_label(period: str) -> str:
    return f"Quý {period[1:]}" if period.startswith("Q") else f"Tháng {period[1:]}"


# -------------------------------
# Report lines
# -------------------------------

def _bank_details(banks: Sequence[BankRecord], separator: str) -> str:
    return ", ".join(f"{b.display_name}{separator} {b.amount} tỷ" for b in detailed_banks(banks))


def _member_lines(manual: ManualData) -> Tuple[str, ...]:
    lines = []
    for idx, member in enumerate(manual.personal_debts):
        valid = detailed_banks(member.banks)
        name = member.name.strip()
        if not name and not valid:
            continue
        total = sum_bank_amounts(member.banks)
        details = _bank_details(member.banks, "")
        line = f"{name or f'Thành viên {idx + 1}'}: {format_debt_total(total)}"
        if details:
            line += f" ({details})"
        lines.append(line)
    return tuple(lines) or (NOT_PROVIDED,)


def _software(manual: ManualData) -> str:
    names = [SOFTWARE_OPTIONS.get(s, s) for s in manual.software]
    if manual.software_other.strip():
        names.append(manual.software_other.strip())
    return ", ".join(names) if names else NOT_PROVIDED


def _supermarket(manual: ManualData) -> str:
    if manual.supermarket == "co":
        name = manual.supermarket_name.strip()
        return f"Có ({name})" if name else "Có"
    return YES_NO_LABELS.get(manual.supermarket, NOT_PROVIDED)


def _profit_loss(state: AppState) -> str:
    outcome = state.manual.profit_loss
    if outcome == "loi":
        amount = state.extracted.net_profit_or_loss_current_year or state.manual.manual_profit_loss_amount
        return f"Có lỗ ({format_currency(amount) if amount else NOT_PROVIDED})"
    if outcome == "loi_nhuan":
        return "Có lợi nhuận"
    return NOT_PROVIDED


def build_report(state: AppState, report_year: int = DEFAULT_REPORT_YEAR) -> List[ReportLine]:
    extracted, manual = state.extracted, state.manual
    prior_year, current_year = financial_years(report_year)

    periods = vat_periods(manual.vat_frequency)
    vat_total = vat_revenue_total(extracted, manual.vat_frequency)
    corporate_total = corporate_debt_total(manual)
    personal_total = personal_debt_total(manual)

    corporate_details = _bank_details(manual.corporate_banks, ":")

    return [
        ReportLine("Công ty:", extracted.company_name or PLACEHOLDER),
        ReportLine("Mã số thuế:", extracted.tax_id or PLACEHOLDER),
        ReportLine("Ngành nghề kinh doanh:", extracted.business_line or PLACEHOLDER),
        ReportLine(f"Doanh thu thuế {prior_year}:", format_currency(extracted.revenue_prior_year)),
        ReportLine(f"Doanh thu thuế {current_year}:", format_currency(extracted.revenue_current_year)),
        ReportLine(
            f"Doanh thu thuế {report_year} (Tổng cộng: {format_vat_total(vat_total)}):",
            children=tuple(
                f"{period_label(p)}: {format_currency(extracted.vat_revenue(p))}" for p in periods
            ),
        ),
        ReportLine(
            "Dư nợ doanh nghiệp:",
            f"Tổng cộng: {format_debt_total(corporate_total)}" if corporate_total else NOT_PROVIDED,
            highlight=corporate_total != 0,
            detail=f"(Chi tiết: {corporate_details})" if corporate_details else "",
        ),
        ReportLine(
            "Dư nợ cá nhân các thành viên:",
            f"(Tổng cộng: {format_debt_total(personal_total)})" if personal_total else NOT_PROVIDED,
            highlight=personal_total != 0,
            children=_member_lines(manual),
            list_class="list-circle",
        ),
        ReportLine("Phần mềm sử dụng:", _software(manual)),
        ReportLine("Xuất nhập khẩu:", IMPORT_EXPORT_LABELS.get(manual.import_export, NOT_PROVIDED)),
        ReportLine("Cung cấp hàng siêu thị:", _supermarket(manual)),
        ReportLine(f"Báo thuế {current_year} có lỗ không:", _profit_loss(state)),
        ReportLine("Nợ xấu doanh nghiệp:", YES_NO_LABELS.get(manual.corporate_bad_debt, NOT_PROVIDED)),
        ReportLine("Nợ xấu cá nhân:", YES_NO_LABELS.get(manual.personal_bad_debt, NOT_PROVIDED)),
        ReportLine(
            "Thành viên góp vốn nợ xấu:",
            MEMBER_BAD_DEBT_LABELS.get(manual.member_bad_debt, NOT_PROVIDED),
        ),
    ]


# -------------------------------
# Rendering
# -------------------------------

def render_html(lines: Sequence[ReportLine]) -> str:
    """HTML fragment; every user-provided value is escaped."""
    esc = html.escape
    items = []
    for line in lines:
        parts = [f"<strong>{esc(line.label)}</strong>"]
        if line.value:
            value = esc(line.value)
            parts.append(f'<span class="total">{value}</span>' if line.highlight else value)
        if line.detail:
            parts.append(esc(line.detail))
        body = " ".join(parts)
        if line.children:
            children = "".join(f"<li>{esc(child)}</li>" for child in line.children)
            body += f'<ul class="{line.list_class}">{children}</ul>'
        items.append(f"<li>{body}</li>")
    return (
        '<div class="report">'
        f"<h3>{esc(REPORT_TITLE)}</h3>"
        f"<ul>{''.join(items)}</ul>"
        "</div>"
    )


def render_text(lines: Sequence[ReportLine]) -> str:
    out = [REPORT_TITLE]
    for line in lines:
        text = " ".join(part for part in (line.label, line.value, line.detail) if part)
        out.append(text)
        out.extend(f"  - {child}" for child in line.children)
    return "\n".join(out)


def _wrap_document(fragment: str, style: str) -> str:
    return (
        "<!DOCTYPE html>\n"
        '<html lang="vi">\n'
        "<head>\n"
        '  <meta charset="utf-8">\n'
        f"  <title>{DOCUMENT_TITLE}</title>\n"
        f"  <style>{style}</style>\n"
        "</head>\n"
        "<body>\n"
        f"{fragment}\n"
        "</body>\n"
        "</html>\n"
    )


def standalone_html(fragment: str) -> str:
    """Self-contained document offered for download."""
    return _wrap_document(fragment, STANDALONE_STYLE)


def preview_html(fragment: str) -> str:
    return _wrap_document(fragment, PREVIEW_STYLE)


def download_filename(tax_id: str) -> str:
    safe = re.sub(r"[^0-9A-Za-z_-]", "", tax_id or "")
    return f"Bao_cao_{safe or 'DN'}.html"


# -------------------------------
# Debt breakdown table
# -------------------------------

def debt_breakdown_frame(manual: ManualData) -> pd.DataFrame:
    """One row per detailed bank line, corporate first, then each member."""
    rows = []
    for bank in detailed_banks(manual.corporate_banks):
        rows.append({
            DEBT_COLUMNS[0]: "Doanh nghiệp",
            DEBT_COLUMNS[1]: bank.display_name,
            DEBT_COLUMNS[2]: float(parse_amount(bank.amount)),
        })
    for idx, member in enumerate(manual.personal_debts):
        owner = member.name.strip() or f"Thành viên {idx + 1}"
        for bank in detailed_banks(member.banks):
            rows.append({
                DEBT_COLUMNS[0]: owner,
                DEBT_COLUMNS[1]: bank.display_name,
                DEBT_COLUMNS[2]: float(parse_amount(bank.amount)),
            })
    if not rows:
        return pd.DataFrame(columns=DEBT_COLUMNS)
    return pd.DataFrame(rows, columns=DEBT_COLUMNS)
