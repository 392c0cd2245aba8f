"""
XSD Field Mapper - Streamlit UI
Upload XSD schemas and a source file, download the suggested mapping
"""
import streamlit as st
import logging
from dotenv import load_dotenv

from main import FieldMappingPipeline
from utils.config import MapperSettings
from utils.exceptions import MappingError
from utils.logging_config import setup_logging
from utils.validators import (
    DEFAULT_PROJECT_NAME, OUTPUT_FORMATS, SCHEMA_EXTENSIONS, SOURCE_EXTENSIONS, upload_types
)
from validator.review_interface import MappingReviewer

load_dotenv()
settings = MapperSettings.from_env()
setup_logging(log_level=settings.log_level, log_file=settings.log_file)
logger = logging.getLogger(__name__)

st.set_page_config(
    page_title="XSD Field Mapper",
    page_icon="🧭",
    layout="wide"
)

FORMAT_LABELS = {
    'both': "Excel + HTML (zip)",
    'xlsx': "Excel only",
    'html': "HTML only (zip)",
}

if 'result' not in st.session_state:
    st.session_state.result = None

st.title("🧭 XSD Field Mapper")
st.markdown("### Map source fields to XSD element paths with AI-assisted scoring")

with st.sidebar:
    st.header("⚙️ Configuration")
    if settings.uses_azure:
        st.success(f"✅ Azure OpenAI: {settings.azure_deployment}")
    elif settings.openai_api_key:
        st.success(f"✅ OpenAI: {settings.openai_model}")
    else:
        st.error("❌ Scoring oracle not configured")
    st.metric("Batch size", settings.batch_size)
    st.metric("Dictionary cap", settings.dictionary_cap)

col1, col2 = st.columns(2)
with col1:
    xsd_uploads = st.file_uploader("XSD schema files", type=upload_types(SCHEMA_EXTENSIONS),
                                   accept_multiple_files=True)
with col2:
    source_upload = st.file_uploader("Source file", type=upload_types(SOURCE_EXTENSIONS))

col1, col2 = st.columns(2)
with col1:
    output_format = st.selectbox(
        "Output format", OUTPUT_FORMATS, format_func=lambda f: FORMAT_LABELS[f]
    )
with col2:
    project_name = st.text_input("Project name", placeholder=DEFAULT_PROJECT_NAME)

if st.button("🚀 Generate Mapping", type="primary", disabled=not xsd_uploads or source_upload is None):
    st.session_state.result = None
    schema_files = [(f.name, f.getvalue()) for f in xsd_uploads or []]
    source_file = (source_upload.name, source_upload.getvalue()) if source_upload else None

    with st.spinner("🤖 Scoring fields... (this may take a minute)"):
        try:
            pipeline = FieldMappingPipeline(settings=settings)
            st.session_state.result = pipeline.run(
                schema_files, source_file, output_format=output_format, project_name=project_name
            )
        except MappingError as e:
            logger.error(f"Mapping failed: {str(e)}")
            st.error(f"❌ {str(e)}")

result = st.session_state.result
if result:
    st.success(f"✅ Mapped {len(result.by_source)} fields")
    st.download_button(
        label=f"📥 Download {result.artifact.filename}",
        data=result.artifact.content,
        file_name=result.artifact.filename,
        mime=result.artifact.media_type,
    )
    st.markdown("---")
    MappingReviewer().create_review_ui(result)
