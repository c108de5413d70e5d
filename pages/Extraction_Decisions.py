import streamlit as st
import pandas as pd

from src.config import get_api_key, get_report_year, load_settings
from src.extraction_prompts import financial_years, get_extraction_spec
from src.models import DocType

st.set_page_config(page_title="Extraction Decisions & Trade-offs", layout="centered")

st.title("Extraction Decisions & Trade-offs")

st.markdown("""
This panel explains how uploaded documents are turned into form values, and how the app behaves
when the Gemini API is rate limited or overloaded.
""")

st.header("Design goals")
st.markdown("""
- Fill the company profile from the documents people already have (registration certificate, financial statements, VAT returns).
- Keep working when a single model hits its quota: try the next model instead of failing the upload.
- Never write partial or guessed values into the form; a failed upload leaves the form untouched.
""")

st.header("Key decisions and why")

st.subheader("1) One prompt and one JSON shape per document type")
st.markdown("""
- Each document type asks for a small, fixed set of string fields (e.g. `revenue`, `netProfitOrLoss`).
- Values are copied as written in the document; the form does the number parsing.
- Only the registration certificate enables Google Search, to look the tax id up on masothue.com
  and copy the *Ngành nghề chính* field verbatim, including the *Chi tiết:* part.
""")

st.subheader("2) Model priority list with fallback")
st.markdown("""
- Models are tried in the configured order, strongest first.
- Quota / rate-limit / overload errors (429, 503, `RESOURCE_EXHAUSTED`) are retried on the same model
  with a linear backoff (attempt x backoff seconds).
- Any other error (bad request, unsupported file, auth failure) or an unusable answer skips to the next model at once.
- A short pause separates two models so a shared rate limit is not hit again immediately.
- When every model fails the last error is reported and the field shows a retry message.
""")

st.subheader("3) Settings are configuration, not code")
st.markdown("""
The model list and retry policy are read from environment variables or a `.env` file
(`GEMINI_MODELS`, `GEMINI_MAX_ATTEMPTS`, `GEMINI_BACKOFF_SECONDS`, `GEMINI_MODEL_SWITCH_DELAY`).
""")

settings = load_settings()
report_year = get_report_year()
prior_year, current_year = financial_years(report_year)

st.header("Active settings")
col_attempts, col_backoff, col_switch = st.columns(3)
col_attempts.metric("Attempts per model", settings.max_attempts)
col_backoff.metric("Backoff step (s)", settings.backoff_seconds)
col_switch.metric("Pause between models (s)", settings.model_switch_delay)

models_df = pd.DataFrame({
    "Priority": range(1, len(settings.model_priority) + 1),
    "Model": settings.model_priority,
})
st.dataframe(models_df, hide_index=True)

if get_api_key(st.secrets):
    st.success("Gemini API key is configured.")
else:
    st.error("GEMINI_API_KEY is not set. Uploads will be rejected until it is configured.")

st.header("Document types")
doc_rows = []
for doc_type in (DocType.REGISTRATION, DocType.FINANCIAL_PRIOR_YEAR, DocType.FINANCIAL_CURRENT_YEAR, DocType.VAT_Q1):
    spec = get_extraction_spec(doc_type, report_year)
    doc_rows.append({
        "Document": doc_type.value,
        "Fields": ", ".join(spec.field_names),
        "Google Search": "yes" if spec.use_search else "no",
    })
st.dataframe(pd.DataFrame(doc_rows), hide_index=True)
st.caption(
    f"Financial statements cover {prior_year} and {current_year}; VAT returns cover {report_year} "
    "(VAT_Q1..Q4 or VAT_M1..M12 share the same shape)."
)
