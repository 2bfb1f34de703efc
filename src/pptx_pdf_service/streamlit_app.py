import io
import os
from dataclasses import dataclass

import requests
import streamlit as st

API_BASE = os.getenv("PPTX_SERVICE_API_BASE", os.getenv("API_BASE", "http://localhost:3001")).rstrip("/")
REQUEST_TIMEOUT = float(os.getenv("PPTX_SERVICE_UI_TIMEOUT", "600"))
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

LEGACY_PPT_MESSAGE = (
    "The .ppt format is an older version not supported by this tool. Please open your file "
    "in PowerPoint and save it as a modern .pptx file, then try again."
)


@dataclass
class ConversionOutcome:
    pdf: bytes | None = None
    filename: str | None = None
    error: str | None = None


def _attachment_name(content_disposition: str, fallback: str) -> str:
    for part in content_disposition.split(";"):
        key, _, value = part.strip().partition("=")
        if key.lower() == "filename" and value:
            return value.strip('"')
    return fallback


def convert_file(name: str, data: bytes, content_type: str | None = None) -> ConversionOutcome:
    """POST one presentation to the API and collect the PDF or an error message."""
    files = {"file": (name, data, content_type or PPTX_MIME)}
    try:
        resp = requests.post(f"{API_BASE}/convert/pptx-to-pdf", files=files, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        return ConversionOutcome(error=f"Failed to connect to API: {e}")
    if resp.status_code != 200:
        try:
            body = resp.json()
            message = body.get("error", "Unknown error")
            if body.get("details"):
                message = f"{message}: {body['details']}"
        except ValueError:
            message = resp.text
        return ConversionOutcome(error=f"Conversion failed ({resp.status_code}): {message}")
    fallback = os.path.splitext(name)[0] + ".pdf"
    filename = _attachment_name(resp.headers.get("content-disposition", ""), fallback)
    return ConversionOutcome(pdf=resp.content, filename=filename)


def _reset_state():
    for key in ["result", "error"]:
        if key in st.session_state:
            del st.session_state[key]
    # Bump the uploader key to clear any previously uploaded file widget state
    st.session_state["upload_key"] = st.session_state.get("upload_key", 0) + 1


def main() -> None:
    st.set_page_config(page_title="PowerPoint to PDF Converter", page_icon="📄", layout="centered")
    st.title("📄 PowerPoint to PDF Converter")
    st.caption(f"API base: {API_BASE}")

    if st.button("Convert another file", type="secondary"):
        _reset_state()
        st.rerun()

    if "upload_key" not in st.session_state:
        st.session_state["upload_key"] = 0
    uploaded: io.BytesIO | None = st.file_uploader(
        "Upload PowerPoint File (.pptx)",
        type=["pptx", "ppt"],  # type: ignore[arg-type]
        key=f"uploader-{st.session_state['upload_key']}",
    )

    if uploaded is not None and uploaded.name.lower().endswith(".ppt"):
        st.error(LEGACY_PPT_MESSAGE)
        uploaded = None

    if uploaded is not None and "result" not in st.session_state and st.button("Convert to PDF", type="primary"):
        with st.spinner("Converting..."):
            outcome = convert_file(uploaded.name, uploaded.getvalue(), uploaded.type)
        if outcome.error:
            st.session_state["error"] = outcome.error
        else:
            st.session_state["result"] = outcome
            st.session_state.pop("error", None)

    if outcome := st.session_state.get("result"):
        st.success("Your PowerPoint has been converted to PDF.")
        st.download_button(
            label="Download PDF",
            data=outcome.pdf,
            file_name=outcome.filename,
            mime="application/pdf",
        )

    if err := st.session_state.get("error"):
        st.error(err)


if __name__ == "__main__":
    main()
