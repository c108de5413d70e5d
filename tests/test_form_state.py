"""Tests for the immutable form state transitions."""

import pytest

from src.form_state import (
    add_bank,
    add_corporate_bank,
    add_member,
    add_member_bank,
    extraction_updates,
    initial_state,
    merge_extraction,
    remove_bank,
    remove_corporate_bank,
    remove_member,
    remove_member_bank,
    rename_member,
    set_manual_field,
    set_personal_debts,
    toggle_software,
    update_bank,
    update_corporate_bank,
    update_member_bank,
)
from src.models import BankRecord, DocType, ManualData, MemberDebt


class TestBankRows:

    def test_initial_state_has_blank_rows(self):
        state = initial_state()
        assert len(state.manual.corporate_banks) == 1
        assert state.manual.corporate_banks[0].is_blank
        assert len(state.manual.personal_debts) == 1
        assert len(state.manual.personal_debts[0].banks) == 1

    def test_removing_last_row_leaves_one_blank_row(self):
        only = BankRecord(id="x", bank_name="VCB", amount="5")
        result = remove_bank((only,), "x")
        assert len(result) == 1
        assert result[0].is_blank
        assert result[0].id != "x"

    def test_removing_unknown_id_from_single_row_still_never_empties(self):
        result = remove_bank((), "missing")
        assert len(result) == 1 and result[0].is_blank

    def test_remove_keeps_other_rows_shared(self):
        a, b = BankRecord(id="a", bank_name="VCB"), BankRecord(id="b", bank_name="ACB")
        result = remove_bank((a, b), "a")
        assert result == (b,)
        assert result[0] is b

    def test_add_and_update(self):
        banks = add_bank((BankRecord(id="a"),))
        assert len(banks) == 2
        updated = update_bank(banks, "a", bank_name="OTHER", other_name="X", amount="2,25")
        assert updated[0].display_name == "X"
        assert updated[1] is banks[1]

    def test_update_rejects_unknown_field(self):
        with pytest.raises(ValueError):
            update_bank((BankRecord(id="a"),), "a", colour="red")

    def test_empty_collections_are_normalised_on_construction(self):
        assert len(ManualData(corporate_banks=()).corporate_banks) == 1
        assert len(MemberDebt(banks=()).banks) == 1


class TestStateTransitions:

    def test_corporate_bank_cycle(self):
        state = initial_state()
        first_id = state.manual.corporate_banks[0].id
        state = update_corporate_bank(state, first_id, bank_name="VCB", amount="1.500")
        state = add_corporate_bank(state)
        assert len(state.manual.corporate_banks) == 2

        state = remove_corporate_bank(state, first_id)
        state = remove_corporate_bank(state, state.manual.corporate_banks[0].id)
        assert len(state.manual.corporate_banks) == 1
        assert state.manual.corporate_banks[0].is_blank

    def test_member_bank_cycle_only_touches_that_member(self):
        state = initial_state()
        state = set_personal_debts(state, add_member(state.manual.personal_debts))
        m1, m2 = state.manual.personal_debts

        state = add_member_bank(state, m1.id)
        new_row = state.manual.personal_debts[0].banks[-1]
        state = update_member_bank(state, m1.id, new_row.id, bank_name="TCB", amount="3")

        assert len(state.manual.personal_debts[0].banks) == 2
        assert state.manual.personal_debts[1] is m2

        state = remove_member_bank(state, m1.id, new_row.id)
        state = remove_member_bank(state, m1.id, state.manual.personal_debts[0].banks[0].id)
        assert len(state.manual.personal_debts[0].banks) == 1

    def test_unknown_member_raises(self):
        with pytest.raises(KeyError):
            add_member_bank(initial_state(), "nobody")

    def test_member_list_never_empties(self):
        members = (MemberDebt(id="m1", name="A"),)
        result = remove_member(members, "m1")
        assert len(result) == 1
        assert result[0].name == ""

    def test_rename_member(self):
        members = (MemberDebt(id="m1"), MemberDebt(id="m2"))
        result = rename_member(members, "m2", "Trần B")
        assert result[1].name == "Trần B"
        assert result[0] is members[0]

    def test_toggle_software(self):
        state = toggle_software(initial_state(), "misa")
        state = toggle_software(state, "bkav")
        assert state.manual.software == ("misa", "bkav")
        state = toggle_software(state, "misa")
        assert state.manual.software == ("bkav",)

    def test_set_manual_field(self):
        state = set_manual_field(initial_state(), "import_export", "ca_hai")
        assert state.manual.import_export == "ca_hai"

    @pytest.mark.parametrize("name", ["corporate_banks", "software", "nonexistent"])
    def test_set_manual_field_rejects_non_scalar(self, name):
        with pytest.raises(ValueError):
            set_manual_field(initial_state(), name, "x")

    def test_mutation_leaves_previous_state_untouched(self):
        before = initial_state()
        after = set_manual_field(before, "supermarket", "co")
        assert before.manual.supermarket == ""
        assert after.extracted is before.extracted
        assert after.manual.corporate_banks is before.manual.corporate_banks


class TestMergeExtraction:

    def test_registration(self):
        data = {"companyName": " Công ty ABC ", "taxId": "0101234567", "businessLine": "Bán buôn. Chi tiết: gạo"}
        state = merge_extraction(initial_state(), DocType.REGISTRATION, data)
        assert state.extracted.company_name == "Công ty ABC"
        assert state.extracted.tax_id == "0101234567"
        assert state.extracted.business_line == "Bán buôn. Chi tiết: gạo"

    def test_financial_current_year(self):
        state = merge_extraction(initial_state(), DocType.FINANCIAL_CURRENT_YEAR,
                                 {"revenue": "9.000", "netProfitOrLoss": "-100"})
        assert state.extracted.revenue_current_year == "9.000"
        assert state.extracted.net_profit_or_loss_current_year == "-100"

    def test_financial_prior_year(self):
        updates = extraction_updates(DocType.FINANCIAL_PRIOR_YEAR, {"revenue": 1200})
        assert updates == {"revenue_prior_year": "1200"}

    @pytest.mark.parametrize("doc_type,field", [
        (DocType.VAT_Q1, "revenue_q1"),
        (DocType.VAT_Q4, "revenue_q4"),
        (DocType.VAT_M7, "revenue_m7"),
        (DocType.VAT_M12, "revenue_m12"),
    ])
    def test_vat_periods(self, doc_type, field):
        state = merge_extraction(initial_state(), doc_type, {"revenue": "500"})
        assert getattr(state.extracted, field) == "500"

    def test_missing_keys_become_empty(self):
        state = merge_extraction(initial_state(), DocType.REGISTRATION, {"companyName": "ABC"})
        assert state.extracted.tax_id == ""
