"""
models.py

State objects for the business profile form. All objects are frozen; the
helpers in form_state.py return new objects instead of mutating in place.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

QUARTERS = ("Q1", "Q2", "Q3", "Q4")
MONTHS = tuple(f"M{i}" for i in range(1, 13))

OTHER_BANK = "OTHER"

# Selector code -> display label
BANK_OPTIONS = {
    "": "-- Chọn Ngân hàng --",
    "TCB": "Techcombank (TCB)",
    "VPB": "VPBank (VPB)",
    "VIB": "VIB (VIB)",
    "ACB": "ACB",
    "VCB": "Vietcombank (VCB)",
    "BIDV": "BIDV",
    "CTG": "VietinBank (CTG)",
    "MBB": "MBBank (MBB)",
    "STB": "Sacombank (STB)",
    OTHER_BANK: "Khác (Ghi rõ)...",
}

SOFTWARE_OPTIONS = {
    "misa": "MISA",
    "easy_invoice": "Easy Invoice",
    "bkav": "BKAV",
    "cyber_lotus": "Cyber Lotus",
}

IMPORT_EXPORT_OPTIONS = {
    "": "-- Chọn --",
    "nhap_khau": "Có nhập khẩu",
    "xuat_khau": "Có xuất khẩu",
    "ca_hai": "Có cả hai",
    "khong": "Không",
}

YES_NO_OPTIONS = {
    "": "-- Chọn --",
    "co": "Có",
    "khong": "Không",
}

PROFIT_LOSS_OPTIONS = {
    "": "-- Chọn --",
    "loi": "Có lỗ",
    "loi_nhuan": "Có lợi nhuận",
}

MEMBER_BAD_DEBT_OPTIONS = {
    "": "-- Chọn --",
    "co_mot_nguoi": "Có ít nhất một người",
    "khong": "Không",
    "khong_ro": "Không rõ",
}

VAT_FREQUENCY_OPTIONS = {
    "quarterly": "Theo quý",
    "monthly": "Theo tháng",
}


class DocType(str, Enum):
    """Document category; selects the extraction prompt and result shape."""

    REGISTRATION = "REGISTRATION"
    FINANCIAL_PRIOR_YEAR = "FINANCIAL_PRIOR_YEAR"
    FINANCIAL_CURRENT_YEAR = "FINANCIAL_CURRENT_YEAR"
    # Quarters
    VAT_Q1 = "VAT_Q1"
    VAT_Q2 = "VAT_Q2"
    VAT_Q3 = "VAT_Q3"
    VAT_Q4 = "VAT_Q4"
    # Months
    VAT_M1 = "VAT_M1"
    VAT_M2 = "VAT_M2"
    VAT_M3 = "VAT_M3"
    VAT_M4 = "VAT_M4"
    VAT_M5 = "VAT_M5"
    VAT_M6 = "VAT_M6"
    VAT_M7 = "VAT_M7"
    VAT_M8 = "VAT_M8"
    VAT_M9 = "VAT_M9"
    VAT_M10 = "VAT_M10"
    VAT_M11 = "VAT_M11"
    VAT_M12 = "VAT_M12"

    @property
    def is_vat(self) -> bool:
        return self.value.startswith("VAT_")

    @property
    def period(self) -> str:
        """'Q1'..'Q4' or 'M1'..'M12' for VAT filings, '' otherwise."""
        return self.value[4:] if self.is_vat else ""


def new_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class BankRecord:
    id: str = field(default_factory=new_id)
    bank_name: str = ""
    other_name: str = ""
    amount: str = ""  # kept as text so a blank row stays blank

    @property
    def display_name(self) -> str:
        if self.bank_name == OTHER_BANK:
            return self.other_name.strip() or "Khác"
        return self.bank_name

    @property
    def is_blank(self) -> bool:
        return not (self.bank_name or self.other_name or self.amount)


def _ensure_rows(banks) -> Tuple[BankRecord, ...]:
    banks = tuple(banks)
    return banks if banks else (BankRecord(),)


@dataclass(frozen=True)
class MemberDebt:
    id: str = field(default_factory=new_id)
    name: str = ""
    banks: Tuple[BankRecord, ...] = ()

    def __post_init__(self):
        # A member always owns at least one (possibly blank) bank row
        object.__setattr__(self, "banks", _ensure_rows(self.banks))


@dataclass(frozen=True)
class ExtractedData:
    company_name: str = ""
    tax_id: str = ""
    business_line: str = ""
    revenue_prior_year: str = ""
    revenue_current_year: str = ""
    net_profit_or_loss_current_year: str = ""
    # Quarterly VAT
    revenue_q1: str = ""
    revenue_q2: str = ""
    revenue_q3: str = ""
    revenue_q4: str = ""
    # Monthly VAT
    revenue_m1: str = ""
    revenue_m2: str = ""
    revenue_m3: str = ""
    revenue_m4: str = ""
    revenue_m5: str = ""
    revenue_m6: str = ""
    revenue_m7: str = ""
    revenue_m8: str = ""
    revenue_m9: str = ""
    revenue_m10: str = ""
    revenue_m11: str = ""
    revenue_m12: str = ""

    def vat_revenue(self, period: str) -> str:
        return getattr(self, period_field(period))


def period_field(period: str) -> str:
    """'Q1' -> 'revenue_q1', 'M12' -> 'revenue_m12'."""
    if period not in QUARTERS and period not in MONTHS:
        raise ValueError(f"Unknown VAT period: {period!r}")
    return f"revenue_{period.lower()}"


@dataclass(frozen=True)
class ManualData:
    corporate_banks: Tuple[BankRecord, ...] = ()
    personal_debts: Tuple[MemberDebt, ...] = ()
    software: Tuple[str, ...] = ()
    software_other: str = ""
    import_export: str = ""
    supermarket: str = ""
    supermarket_name: str = ""
    profit_loss: str = ""
    manual_profit_loss_amount: str = ""
    corporate_bad_debt: str = ""
    personal_bad_debt: str = ""
    member_bad_debt: str = ""
    vat_frequency: str = "quarterly"

    def __post_init__(self):
        object.__setattr__(self, "corporate_banks", _ensure_rows(self.corporate_banks))
        members = tuple(self.personal_debts) or (MemberDebt(),)
        object.__setattr__(self, "personal_debts", members)
        object.__setattr__(self, "software", tuple(self.software))


@dataclass(frozen=True)
class AppState:
    extracted: ExtractedData = field(default_factory=ExtractedData)
    manual: ManualData = field(default_factory=ManualData)
