import streamlit as st

# Define pages
form = st.Page("pages/Business_Profile_Form.py", icon='💼')

decisions = st.Page("pages/Extraction_Decisions.py", icon='🧪') # How the AI fallback works


# Group pages
pg = st.navigation({
    "Biểu mẫu": [form],
    "Giải thích": [decisions],
})

# Run the navigation
pg.run()
