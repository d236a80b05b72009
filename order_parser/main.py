"""
Order Parser - Main Streamlit UI

Turns an invoice, delivery note or receipt into a purchase request CSV
for the university accounting system.

Features:
- Session-only Gemini API key
- File upload (PDF, JPG, PNG, WEBP)
- Gemini extraction of header and line items
- Editable line items with automatic tax breakdown
- CSV export (UTF-8 with BOM)
"""

import logging
import sys
from pathlib import Path

import pandas as pd
import streamlit as st

# Add project root to path for `streamlit run order_parser/main.py`
sys.path.insert(0, str(Path(__file__).parent.parent))

from order_parser.config import get_config
from order_parser.documents.loader import load_document
from order_parser.errors import MissingCredentialError, OrderParserError
from order_parser.export.csv_export import CSV_MIME_TYPE, CsvExporter
from order_parser.llm.extractor import InvoiceExtractor
from order_parser.session import CredentialStore, ExtractionSession

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

INVOICE_KEY = "invoice"
UPLOAD_TYPES = ["pdf", "jpg", "jpeg", "png", "webp"]


def init_session_state():
    """Initialize Streamlit session state."""
    if "config" not in st.session_state:
        st.session_state.config = get_config()

    if INVOICE_KEY not in st.session_state:
        st.session_state[INVOICE_KEY] = None

    if "error" not in st.session_state:
        st.session_state.error = None

    if "credentials_loaded" not in st.session_state:
        CredentialStore(st.session_state).load(st.session_state.config.gemini.api_key)
        st.session_state.credentials_loaded = True


def get_credentials() -> CredentialStore:
    return CredentialStore(st.session_state)


def get_extraction_session() -> ExtractionSession:
    return ExtractionSession(st.session_state)


# -- callbacks ------------------------------------------------------------

def clear_header_widgets():
    """Drop header widget state so the next invoice shows its own values."""
    for key in [k for k in st.session_state.keys() if str(k).startswith("header_")]:
        del st.session_state[key]


def on_save_api_key():
    key = st.session_state.get("api_key_input", "")
    if key.strip():
        get_credentials().save(key)
        st.session_state.error = None


def on_clear_api_key():
    get_credentials().clear()
    get_extraction_session().cancel()
    st.session_state[INVOICE_KEY] = None
    clear_header_widgets()


def on_reset():
    get_extraction_session().cancel()
    st.session_state[INVOICE_KEY] = None
    st.session_state.error = None
    clear_header_widgets()


def on_header_change(field: str):
    invoice = st.session_state[INVOICE_KEY]
    if invoice is not None:
        invoice.set_header_field(field, st.session_state[f"header_{field}"])


def on_item_change(item_id: str, field: str):
    invoice = st.session_state[INVOICE_KEY]
    if invoice is not None:
        invoice.update_item_field(item_id, field, st.session_state[f"{field}_{item_id}"])


def on_add_item():
    invoice = st.session_state[INVOICE_KEY]
    if invoice is not None:
        invoice.add_item()


def on_delete_item(item_id: str):
    invoice = st.session_state[INVOICE_KEY]
    if invoice is not None:
        invoice.delete_item(item_id)


# -- sections -------------------------------------------------------------

def render_sidebar():
    """Render the settings sidebar."""
    with st.sidebar:
        st.header("⚙️ Settings")
        config = st.session_state.config
        st.caption(f"Model: `{config.gemini.model}`")

        credentials = get_credentials()
        if credentials.is_set:
            valid, message = config.gemini.validate_api_key(credentials.api_key)
            if valid:
                st.success("✅ API key set for this session")
            else:
                st.warning(f"⚠️ {message}")
            st.button("🔑 APIキー再設定", on_click=on_clear_api_key)


def render_api_key_gate():
    """Ask for the API key; nothing else is usable without it."""
    st.header("🔑 Gemini API Key")
    st.info("解析を始めるには Gemini API Key を入力してください。キーはこのセッションの間だけ保持されます。")
    st.text_input("API Key", type="password", key="api_key_input")
    st.button("保存", type="primary", on_click=on_save_api_key)


def run_extraction(uploaded_file):
    """Validate the upload and run extraction, keeping one request in flight."""
    session = get_extraction_session()
    credentials = get_credentials()

    token = session.begin()
    if token is None:
        return

    try:
        if not credentials.is_set:
            raise MissingCredentialError()

        document = load_document(
            uploaded_file.getvalue(),
            uploaded_file.type,
            uploaded_file.name,
            config=st.session_state.config,
        )

        with st.spinner("AIが書類を解析しています..."):
            invoice = InvoiceExtractor().extract(document, credentials.api_key)

        if session.apply(token, invoice, INVOICE_KEY):
            st.session_state.error = None
    except OrderParserError as e:
        logger.warning(f"Upload failed: {e}")
        st.session_state.error = e.user_message
    finally:
        # Also covers Streamlit interrupting the run mid-request
        session.release(token)


def render_upload_section():
    """Render the file upload section."""
    st.header("📄 書類から購入依頼データを自動作成")
    st.markdown(
        "請求書や納品書をアップロードするだけで、AIが品名・金額・日付を解析。"
        "大学の会計システムに対応した形式でCSVを出力します。"
    )

    uploaded_file = st.file_uploader(
        "請求書・納品書・領収書 (PDF, JPG, PNG, WEBP)",
        type=UPLOAD_TYPES,
    )

    if uploaded_file and uploaded_file.type.startswith("image/"):
        st.image(uploaded_file.getvalue(), caption=uploaded_file.name, width=400)

    pending = get_extraction_session().pending
    if st.button("🔍 解析する", type="primary", disabled=uploaded_file is None or pending):
        run_extraction(uploaded_file)
        if st.session_state[INVOICE_KEY] is not None:
            st.rerun()


def render_header_fields(invoice):
    cols = st.columns(4)
    fields = [
        ("date", "起案日 (YYYY-MM-DD)"),
        ("vendor_name", "相手先 (業者名)"),
        ("requester_name", "依頼者"),
        ("delivery_destination", "納入先"),
    ]
    for col, (field, label) in zip(cols, fields):
        with col:
            st.text_input(
                label,
                value=getattr(invoice, field),
                key=f"header_{field}",
                on_change=on_header_change,
                args=(field,),
            )


def render_line_items(invoice):
    st.subheader("明細")

    widths = [4, 1, 1, 1.5, 1.5, 1.5, 1.5, 0.6]
    labels = ["品名", "数量", "単位", "税込単価", "金額(税込)", "本体(参考)", "税(参考)", ""]
    for col, label in zip(st.columns(widths), labels):
        col.markdown(f"**{label}**")

    for line in invoice.calculated_items():
        cols = st.columns(widths)
        cols[0].text_input(
            "品名", value=line.name, key=f"name_{line.id}",
            on_change=on_item_change, args=(line.id, "name"),
            label_visibility="collapsed", placeholder="品名を入力",
        )
        cols[1].number_input(
            "数量", value=float(line.quantity), key=f"quantity_{line.id}",
            on_change=on_item_change, args=(line.id, "quantity"),
            label_visibility="collapsed", step=1.0, format="%g",
        )
        cols[2].text_input(
            "単位", value=line.unit, key=f"unit_{line.id}",
            on_change=on_item_change, args=(line.id, "unit"),
            label_visibility="collapsed",
        )
        cols[3].number_input(
            "税込単価", value=float(line.unit_price_inc_tax), key=f"unit_price_inc_tax_{line.id}",
            on_change=on_item_change, args=(line.id, "unit_price_inc_tax"),
            label_visibility="collapsed", step=1.0, format="%g",
        )
        cols[4].markdown(f"**¥{line.amount_inc_tax:,}**")
        cols[5].caption(f"¥{line.net_price:,}")
        cols[6].caption(f"¥{line.tax_amount:,}")
        cols[7].button("🗑", key=f"delete_{line.id}", on_click=on_delete_item, args=(line.id,), help="行を削除")

        if line.quantity < 0 or line.unit_price_inc_tax < 0:
            st.warning(f"「{line.name or '品名未入力'}」の数量または単価が負の値です。")

    st.button("➕ 行を追加", on_click=on_add_item)
    st.metric("合計金額 (税込)", f"¥{invoice.total_amount():,}")


def render_export_section(invoice):
    """Render the CSV export section."""
    st.header("📊 CSVエクスポート")
    exporter = CsvExporter()

    rows = invoice.to_export_rows()
    if rows:
        df = pd.DataFrame(rows, columns=CsvExporter.COLUMNS)
        df.columns = CsvExporter.HEADERS
        st.dataframe(df, use_container_width=True, hide_index=True)

    st.download_button(
        "⬇️ CSVダウンロード",
        data=exporter.to_bytes(invoice),
        file_name=exporter.file_name(invoice),
        mime=CSV_MIME_TYPE,
        type="primary",
    )


def render_editor():
    """Render the review, edit and export screen."""
    invoice = st.session_state[INVOICE_KEY]

    header_col, reset_col = st.columns([5, 1])
    header_col.header("✏️ 編集・確認")
    reset_col.button("🔄 リセット", on_click=on_reset)

    render_header_fields(invoice)
    render_line_items(invoice)
    st.caption("※大学システム入力用計算済み")

    st.divider()
    render_export_section(invoice)


def main():
    """Main application entry point."""
    st.set_page_config(
        page_title="Order Parser",
        page_icon="📄",
        layout="wide",
    )

    init_session_state()

    st.title("📄 Order Parser")

    render_sidebar()

    if not get_credentials().is_set:
        render_api_key_gate()
    elif st.session_state[INVOICE_KEY] is None:
        render_upload_section()
    else:
        render_editor()

    if st.session_state.error:
        st.error(st.session_state.error)


if __name__ == "__main__":
    main()
