import logging
import streamlit as st
import streamlit.components.v1 as components

from src.config import get_api_key, get_report_year, load_settings
from src.document_payload import ACCEPTED_EXTENSIONS, read_document
from src.extraction_prompts import financial_years
from src.form_state import (
    add_corporate_bank,
    add_member,
    add_member_bank,
    initial_state,
    merge_extraction,
    remove_corporate_bank,
    remove_member,
    remove_member_bank,
    rename_member,
    set_manual_field,
    set_personal_debts,
    toggle_software,
    update_corporate_bank,
    update_member_bank,
)
from src.gemini_service import GeminiExtractor, MissingApiKeyError
from src.models import (
    BANK_OPTIONS,
    IMPORT_EXPORT_OPTIONS,
    MEMBER_BAD_DEBT_OPTIONS,
    OTHER_BANK,
    PROFIT_LOSS_OPTIONS,
    QUARTERS,
    SOFTWARE_OPTIONS,
    VAT_FREQUENCY_OPTIONS,
    YES_NO_OPTIONS,
    DocType,
)
from src.report import (
    build_report,
    corporate_debt_total,
    debt_breakdown_frame,
    download_filename,
    format_vat_total,
    period_label,
    preview_html,
    render_html,
    render_text,
    standalone_html,
    vat_periods,
    vat_revenue_total,
)
from src.money import format_vi_number
from src.upload_tracker import EXTRACT, QUEUED, UploadTracker, upload_identity

logger = logging.getLogger("gemini_service.ui")

REPORT_YEAR = get_report_year()
PRIOR_YEAR, CURRENT_YEAR = financial_years(REPORT_YEAR)
FAILURE_MESSAGE = "Không thể đọc tài liệu. Vui lòng thử lại."

st.set_page_config(page_title="Biểu Mẫu Thu Thập Thông Tin Doanh Nghiệp", page_icon="💼", layout="centered")

# -------------------------------
# Session state
# -------------------------------

def _init_session():
    defaults = {
        "app_state": initial_state(),
        "extraction_errors": {},
        "uploads": UploadTracker(),
        "show_result": False,
        "confirm_reset": False,
        "form_version": 0,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def _key(name: str) -> str:
    # Bumping form_version on reset gives every widget a fresh key
    return f"{name}__v{st.session_state.form_version}"


def _apply(fn, *args, **kwargs):
    st.session_state.app_state = fn(st.session_state.app_state, *args, **kwargs)


def _reset_form():
    st.session_state.app_state = initial_state()
    st.session_state.extraction_errors = {}
    st.session_state.uploads = UploadTracker()
    st.session_state.show_result = False
    st.session_state.confirm_reset = False
    st.session_state.form_version += 1


# -------------------------------
# Extraction fields
# -------------------------------

def run_extraction(doc_type: DocType, uploaded) -> None:
    """Extract one upload and merge the result; on failure nothing is merged."""
    errors = st.session_state.extraction_errors
    errors.pop(doc_type.value, None)
    try:
        with st.spinner("Đang trích xuất bằng AI..."):
            payload = read_document(uploaded)
            extractor = GeminiExtractor(
                get_api_key(st.secrets),
                settings=load_settings(),
                report_year=REPORT_YEAR,
            )
            data = extractor.process_document(payload, doc_type)
    except MissingApiKeyError as e:
        logger.error("Extraction rejected: %s", e)
        errors[doc_type.value] = str(e)
    except Exception as e:
        logger.warning("Extraction failed for %s: %s", doc_type.value, e)
        errors[doc_type.value] = FAILURE_MESSAGE
    else:
        _apply(merge_extraction, doc_type, data)
    finally:
        st.session_state.uploads.finish(doc_type.value, upload_identity(uploaded))


def extraction_field(label: str, doc_type: DocType, result_value: str = "", result_label: str = "", sub_label: str = ""):
    st.markdown(f"**{label}**")
    if sub_label:
        st.caption(sub_label)

    uploaded = st.file_uploader(
        label,
        type=ACCEPTED_EXTENSIONS,
        key=_key(f"upload_{doc_type.value}"),
        label_visibility="collapsed",
        disabled=st.session_state.uploads.is_busy(doc_type.value),
    )
    step = st.session_state.uploads.step(doc_type.value, upload_identity(uploaded) if uploaded is not None else None)
    if step == QUEUED:
        # Redraw with this uploader disabled before the request starts
        st.rerun()
    elif step == EXTRACT:
        run_extraction(doc_type, uploaded)
        # Show the merged values and re-enable the uploader
        st.rerun()

    error = st.session_state.extraction_errors.get(doc_type.value)
    if error:
        st.error(f"⚠️ {error}")
    if result_value:
        st.success(f"{result_label}: {result_value}" if result_label else result_value)


# -------------------------------
# Bank rows
# -------------------------------

def _on_bank_change(member_id, record_id: str, field: str, widget_key: str):
    value = st.session_state[widget_key]
    if member_id is None:
        _apply(update_corporate_bank, record_id, **{field: value})
    else:
        _apply(update_member_bank, member_id, record_id, **{field: value})


def _on_bank_remove(member_id, record_id: str):
    if member_id is None:
        _apply(remove_corporate_bank, record_id)
    else:
        _apply(remove_member_bank, member_id, record_id)


def _on_bank_add(member_id):
    if member_id is None:
        _apply(add_corporate_bank)
    else:
        _apply(add_member_bank, member_id)


def bank_input(label: str, banks, member_id=None):
    st.markdown(f"**{label}**")
    bank_codes = list(BANK_OPTIONS)
    for bank in banks:
        cols = st.columns([3, 3, 2, 1], vertical_alignment="bottom")
        select_key = _key(f"bank_{bank.id}")
        cols[0].selectbox(
            "Ngân hàng",
            bank_codes,
            index=bank_codes.index(bank.bank_name) if bank.bank_name in bank_codes else 0,
            format_func=BANK_OPTIONS.get,
            key=select_key,
            label_visibility="collapsed",
            on_change=_on_bank_change,
            args=(member_id, bank.id, "bank_name", select_key),
        )
        if bank.bank_name == OTHER_BANK:
            other_key = _key(f"other_{bank.id}")
            cols[1].text_input(
                "Tên ngân hàng khác",
                value=bank.other_name,
                placeholder="Tên ngân hàng khác",
                key=other_key,
                label_visibility="collapsed",
                on_change=_on_bank_change,
                args=(member_id, bank.id, "other_name", other_key),
            )
        amount_key = _key(f"amount_{bank.id}")
        cols[2].text_input(
            "Số tiền (Tỷ)",
            value=bank.amount,
            placeholder="Số tiền (Tỷ)",
            key=amount_key,
            label_visibility="collapsed",
            on_change=_on_bank_change,
            args=(member_id, bank.id, "amount", amount_key),
        )
        cols[3].button(
            "🗑",
            key=_key(f"remove_{bank.id}"),
            help="Xóa dòng",
            on_click=_on_bank_remove,
            args=(member_id, bank.id),
        )
    st.button(
        "➕ Thêm Ngân Hàng",
        key=_key(f"add_bank_{member_id or 'corp'}"),
        on_click=_on_bank_add,
        args=(member_id,),
    )


def _on_member_rename(member_id: str, widget_key: str):
    state = st.session_state.app_state
    _apply(set_personal_debts, rename_member(state.manual.personal_debts, member_id, st.session_state[widget_key]))


def _on_member_remove(member_id: str):
    state = st.session_state.app_state
    _apply(set_personal_debts, remove_member(state.manual.personal_debts, member_id))


def _on_member_add():
    state = st.session_state.app_state
    _apply(set_personal_debts, add_member(state.manual.personal_debts))


def member_debt_input(members):
    st.markdown("#### 5. Dư Nợ Cá Nhân các thành viên")
    for index, member in enumerate(members):
        with st.container(border=True):
            cols = st.columns([6, 1], vertical_alignment="bottom")
            name_key = _key(f"member_{member.id}")
            cols[0].text_input(
                f"👤 Thành viên {index + 1}",
                value=member.name,
                placeholder=f"Nhập tên thành viên {index + 1}...",
                key=name_key,
                on_change=_on_member_rename,
                args=(member.id, name_key),
            )
            if len(members) > 1:
                cols[1].button("🗑", key=_key(f"remove_member_{member.id}"), on_click=_on_member_remove, args=(member.id,))
            bank_input("Chi tiết ngân hàng:", member.banks, member_id=member.id)
    st.button("➕ Thêm Thành Viên", key=_key("add_member"), on_click=_on_member_add)


# -------------------------------
# Manual answers
# -------------------------------

def _on_manual_change(field: str, widget_key: str):
    _apply(set_manual_field, field, st.session_state[widget_key])


def manual_select(label: str, field: str, options: dict, current: str):
    codes = list(options)
    widget_key = _key(f"manual_{field}")
    st.selectbox(
        label,
        codes,
        index=codes.index(current) if current in codes else 0,
        format_func=options.get,
        key=widget_key,
        on_change=_on_manual_change,
        args=(field, widget_key),
    )


def manual_radio(label: str, field: str, options: dict, current: str):
    codes = list(options)
    widget_key = _key(f"manual_{field}")
    st.radio(
        label,
        codes,
        index=codes.index(current) if current in codes else None,
        format_func=options.get,
        key=widget_key,
        horizontal=True,
        on_change=_on_manual_change,
        args=(field, widget_key),
    )


def manual_text(label: str, field: str, current: str, placeholder: str = ""):
    widget_key = _key(f"manual_{field}")
    st.text_input(
        label,
        value=current,
        placeholder=placeholder,
        key=widget_key,
        on_change=_on_manual_change,
        args=(field, widget_key),
    )


# -------------------------------
# Result panel
# -------------------------------

def result_panel(state):
    lines = build_report(state, REPORT_YEAR)
    fragment = render_html(lines)
    text = render_text(lines)

    with st.container(border=True):
        st.subheader("Kết Quả Biểu Mẫu")
        components.html(standalone_html(fragment), height=560, scrolling=True)

        col_copy, col_html, col_download = st.columns(3)
        show_copy = col_copy.toggle("📋 Copy", key=_key("show_copy"))
        show_html = col_html.toggle("</> Xem HTML", key=_key("show_html"))
        col_download.download_button(
            "⬇️ Download",
            data=standalone_html(fragment).encode("utf-8"),
            file_name=download_filename(state.extracted.tax_id),
            mime="text/html",
        )

        if show_copy:
            st.caption("Bấm biểu tượng sao chép ở góc phải để copy nội dung.")
            st.code(text, language=None)

        if show_html:
            st.markdown("**Xem trước HTML:**")
            components.html(preview_html(fragment), height=420, scrolling=True)
            st.code(fragment, language="html")

        debts_df = debt_breakdown_frame(state.manual)
        if not debts_df.empty:
            st.markdown("#### Chi tiết dư nợ")
            st.dataframe(debts_df, hide_index=True)
            st.download_button(
                "Download CSV dư nợ",
                data=debts_df.to_csv(index=False).encode("utf-8-sig"),
                file_name="du_no.csv",
                mime="text/csv",
            )

        if st.button("Đóng", key=_key("close_result")):
            st.session_state.show_result = False
            st.rerun()


# -------------------------------
# Main Streamlit Page
# -------------------------------
_init_session()
state = st.session_state.app_state
extracted, manual = state.extracted, state.manual

st.title("📄 Biểu Mẫu Thu Thập Thông Tin Doanh Nghiệp")
st.markdown("Kết hợp trích xuất AI tự động và nhập liệu thủ công để tạo báo cáo nhanh.")
st.divider()

# --- Part 1: automatic extraction ---
st.header("Phần 1: Trích Xuất Tự Động")
st.info("Tải lên tài liệu để hệ thống AI (Gemini) tự động điền thông tin.")

extraction_field(
    "1. Giấy Đăng Ký Kinh Doanh",
    DocType.REGISTRATION,
    result_value=f"{extracted.company_name} - {extracted.business_line}" if extracted.company_name else "",
    result_label="Kết quả",
    sub_label="Hệ thống sẽ lấy MST và tra cứu Ngành nghề chính trên Masothue.com",
)

col_prior, col_current = st.columns(2)
with col_prior:
    extraction_field(
        f"2. BCTC {PRIOR_YEAR}",
        DocType.FINANCIAL_PRIOR_YEAR,
        result_value=extracted.revenue_prior_year,
        result_label=f"Doanh thu {PRIOR_YEAR}",
    )
with col_current:
    extraction_field(
        f"BCTC {CURRENT_YEAR}",
        DocType.FINANCIAL_CURRENT_YEAR,
        result_value=extracted.revenue_current_year,
        result_label=f"Doanh thu {CURRENT_YEAR}",
    )

vat_total_display = format_vat_total(vat_revenue_total(extracted, manual.vat_frequency))
st.markdown(f"**3. Tờ Khai Thuế GTGT {REPORT_YEAR}** (Tổng cộng: {vat_total_display})")
manual_radio("Kỳ kê khai", "vat_frequency", VAT_FREQUENCY_OPTIONS, manual.vat_frequency)

periods = vat_periods(manual.vat_frequency)
vat_cols = st.columns(2 if periods == QUARTERS else 3)
for i, period in enumerate(periods):
    with vat_cols[i % len(vat_cols)]:
        extraction_field(period_label(period), DocType(f"VAT_{period}"), result_value=extracted.vat_revenue(period))

st.divider()

# --- Part 2: manual entry ---
st.header("Phần 2: Nhập Liệu Thủ Công")

corporate_total = corporate_debt_total(manual)
st.text_input(
    "4. Tổng Dư Nợ Doanh Nghiệp (Tỷ đồng)",
    value=format_vi_number(corporate_total) if corporate_total else "",
    placeholder="Tự động tính toán từ chi tiết bên dưới...",
    disabled=True,
    help="Số liệu được tính tự động từ tổng chi tiết bên dưới.",
)
bank_input("Chi Tiết Dư Nợ Doanh Nghiệp (Theo Ngân Hàng)", manual.corporate_banks)

member_debt_input(manual.personal_debts)

st.markdown("#### 6. Phần Mềm Đang Sử Dụng")
sw_cols = st.columns(len(SOFTWARE_OPTIONS) + 1)
for col, (code, name) in zip(sw_cols, SOFTWARE_OPTIONS.items()):
    col.checkbox(
        name,
        value=code in manual.software,
        key=_key(f"software_{code}"),
        on_change=_apply,
        args=(toggle_software, code),
    )
with sw_cols[-1]:
    manual_text("Khác:", "software_other", manual.software_other)

col_ie, col_sm = st.columns(2)
with col_ie:
    manual_select("7. Xuất Nhập Khẩu", "import_export", IMPORT_EXPORT_OPTIONS, manual.import_export)
with col_sm:
    manual_select("8. Cung cấp siêu thị?", "supermarket", YES_NO_OPTIONS, manual.supermarket)
    if manual.supermarket == "co":
        manual_text("Tên siêu thị", "supermarket_name", manual.supermarket_name, placeholder="Tên siêu thị...")

manual_select(f"9. Báo cáo thuế {CURRENT_YEAR} có lỗ không?", "profit_loss", PROFIT_LOSS_OPTIONS, manual.profit_loss)
if manual.profit_loss == "loi" and not extracted.net_profit_or_loss_current_year:
    manual_text("Số lỗ (VNĐ)", "manual_profit_loss_amount", manual.manual_profit_loss_amount)

st.markdown("#### 10. Tình trạng Nợ Xấu (CIC)")
manual_radio("Doanh nghiệp", "corporate_bad_debt", {"co": "DN Có nợ xấu", "khong": "DN Không nợ xấu"}, manual.corporate_bad_debt)
manual_radio("Cá nhân", "personal_bad_debt", {"co": "Cá nhân Có nợ xấu", "khong": "Cá nhân Không nợ xấu"}, manual.personal_bad_debt)

manual_select("11. Thành viên góp vốn có nợ xấu?", "member_bad_debt", MEMBER_BAD_DEBT_OPTIONS, manual.member_bad_debt)

st.divider()

# --- Actions ---
col_result, col_reset = st.columns(2)
if col_result.button("✅ Kết Quả", type="primary", use_container_width=True):
    st.session_state.show_result = True
if col_reset.button("🔄 Tạo Mới", use_container_width=True):
    st.session_state.confirm_reset = True

if st.session_state.confirm_reset:
    st.warning("Bạn có chắc muốn tạo mới? Toàn bộ dữ liệu đã nhập sẽ bị xóa.")
    col_yes, col_no = st.columns(2)
    if col_yes.button("Xác nhận", key="confirm_reset_yes"):
        _reset_form()
        st.rerun()
    if col_no.button("Hủy", key="confirm_reset_no"):
        st.session_state.confirm_reset = False
        st.rerun()

if st.session_state.show_result:
    result_panel(st.session_state.app_state)
