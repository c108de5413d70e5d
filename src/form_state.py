"""
form_state.py

Pure functions that produce a new AppState for each user action. Only the
touched branch is rebuilt; untouched records are shared with the old state.
Every function that edits a list of bank rows keeps at least one row in it.
"""

from dataclasses import replace, fields
from typing import Any, Dict, Iterable, Mapping, Tuple

from src.models import (
    AppState,
    BankRecord,
    DocType,
    ExtractedData,
    ManualData,
    MemberDebt,
    period_field,
)

_MANUAL_FIELDS = {f.name for f in fields(ManualData)}
# List-valued fields have dedicated helpers
_MANUAL_SCALAR_FIELDS = _MANUAL_FIELDS - {"corporate_banks", "personal_debts", "software"}


def initial_state() -> AppState:
    return AppState(extracted=ExtractedData(), manual=ManualData())


# -------------------------------
# Bank rows
# -------------------------------

def add_bank(banks: Iterable[BankRecord]) -> Tuple[BankRecord, ...]:
    return tuple(banks) + (BankRecord(),)


def remove_bank(banks: Iterable[BankRecord], record_id: str) -> Tuple[BankRecord, ...]:
    """Drop a row; removing the last one leaves a single blank row instead."""
    banks = tuple(banks)
    if len(banks) > 1:
        remaining = tuple(b for b in banks if b.id != record_id)
        if remaining:
            return remaining
    return (BankRecord(),)


def update_bank(banks: Iterable[BankRecord], record_id: str, **changes: str) -> Tuple[BankRecord, ...]:
    unknown = set(changes) - {"bank_name", "other_name", "amount"}
    if unknown:
        raise ValueError(f"Unknown bank record fields: {sorted(unknown)}")
    return tuple(replace(b, **changes) if b.id == record_id else b for b in banks)


# -------------------------------
# Member rows
# -------------------------------

def add_member(members: Iterable[MemberDebt]) -> Tuple[MemberDebt, ...]:
    return tuple(members) + (MemberDebt(),)


def remove_member(members: Iterable[MemberDebt], member_id: str) -> Tuple[MemberDebt, ...]:
    members = tuple(members)
    remaining = tuple(m for m in members if m.id != member_id)
    return remaining if remaining else (MemberDebt(),)


def rename_member(members: Iterable[MemberDebt], member_id: str, name: str) -> Tuple[MemberDebt, ...]:
    return tuple(replace(m, name=name) if m.id == member_id else m for m in members)


def set_member_banks(
    members: Iterable[MemberDebt], member_id: str, banks: Iterable[BankRecord]
) -> Tuple[MemberDebt, ...]:
    banks = tuple(banks)
    return tuple(replace(m, banks=banks) if m.id == member_id else m for m in members)


def _find_member(state: AppState, member_id: str) -> MemberDebt:
    for member in state.manual.personal_debts:
        if member.id == member_id:
            return member
    raise KeyError(f"No member with id {member_id!r}")


# -------------------------------
# AppState level helpers
# -------------------------------

def _with_manual(state: AppState, **changes: Any) -> AppState:
    return replace(state, manual=replace(state.manual, **changes))


def set_corporate_banks(state: AppState, banks: Iterable[BankRecord]) -> AppState:
    return _with_manual(state, corporate_banks=tuple(banks))


def set_personal_debts(state: AppState, members: Iterable[MemberDebt]) -> AppState:
    return _with_manual(state, personal_debts=tuple(members))


def add_corporate_bank(state: AppState) -> AppState:
    return set_corporate_banks(state, add_bank(state.manual.corporate_banks))


def remove_corporate_bank(state: AppState, record_id: str) -> AppState:
    return set_corporate_banks(state, remove_bank(state.manual.corporate_banks, record_id))


def update_corporate_bank(state: AppState, record_id: str, **changes: str) -> AppState:
    return set_corporate_banks(state, update_bank(state.manual.corporate_banks, record_id, **changes))


def add_member_bank(state: AppState, member_id: str) -> AppState:
    member = _find_member(state, member_id)
    members = set_member_banks(state.manual.personal_debts, member_id, add_bank(member.banks))
    return set_personal_debts(state, members)


def remove_member_bank(state: AppState, member_id: str, record_id: str) -> AppState:
    member = _find_member(state, member_id)
    members = set_member_banks(state.manual.personal_debts, member_id, remove_bank(member.banks, record_id))
    return set_personal_debts(state, members)


def update_member_bank(state: AppState, member_id: str, record_id: str, **changes: str) -> AppState:
    member = _find_member(state, member_id)
    banks = update_bank(member.banks, record_id, **changes)
    return set_personal_debts(state, set_member_banks(state.manual.personal_debts, member_id, banks))


def set_manual_field(state: AppState, name: str, value: str) -> AppState:
    if name not in _MANUAL_SCALAR_FIELDS:
        raise ValueError(f"Not an editable manual field: {name!r}")
    return _with_manual(state, **{name: value})


def toggle_software(state: AppState, value: str) -> AppState:
    current = state.manual.software
    if value in current:
        software = tuple(s for s in current if s != value)
    else:
        software = current + (value,)
    return _with_manual(state, software=software)


# -------------------------------
# Extraction results
# -------------------------------

def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value).strip()


def extraction_updates(doc_type: DocType, data: Mapping[str, Any]) -> Dict[str, str]:
    """Map the model's JSON keys onto ExtractedData fields for one document type."""
    doc_type = DocType(doc_type)
    if doc_type is DocType.REGISTRATION:
        return {
            "company_name": _text(data, "companyName"),
            "tax_id": _text(data, "taxId"),
            "business_line": _text(data, "businessLine"),
        }
    if doc_type is DocType.FINANCIAL_PRIOR_YEAR:
        return {"revenue_prior_year": _text(data, "revenue")}
    if doc_type is DocType.FINANCIAL_CURRENT_YEAR:
        return {
            "revenue_current_year": _text(data, "revenue"),
            "net_profit_or_loss_current_year": _text(data, "netProfitOrLoss"),
        }
    return {period_field(doc_type.period): _text(data, "revenue")}


def merge_extraction(state: AppState, doc_type: DocType, data: Mapping[str, Any]) -> AppState:
    updates = extraction_updates(doc_type, data)
    return replace(state, extracted=replace(state.extracted, **updates))
