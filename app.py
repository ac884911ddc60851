#!/usr/bin/env python3
"""
CardSense - Web Interface
A Streamlit app for tracking credit card spending, with AI-assisted SMS entry.
"""

import os

# Fix for macOS fork crash in multi-threaded Streamlit environment
os.environ['OBJC_DISABLE_INITIALIZE_FORK_SAFETY'] = 'YES'
import logging

import streamlit as st
import pandas as pd
import plotly.express as px

from aggregator import ALL_CARDS, TransactionAggregator
from config import load_settings
from editors import DELETE_TRANSACTION_PROMPT, CardEditor, TransactionEditor
from errors import CardSenseError, SmsParseError, ValidationError
from models import CATEGORY_STYLES, CardDraft, Category, TransactionInsert, TransactionUpdate
from notifier import Permission, SpendingNotifier, progress_color
from sms_parser import SmsExpenseParser, SmsIngestionAdapter
from store import Store

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# Page configuration
st.set_page_config(
    page_title="CardSense",
    layout="centered",
    initial_sidebar_state="collapsed",
    menu_items={}
)

# Clean CSS
st.markdown("""
<style>
    .block-container {
        padding-top: 2rem;
        padding-bottom: 2rem;
        max-width: 720px;
    }

    h1 {
        font-weight: 600;
        font-size: 1.75rem !important;
    }

    [data-testid="stMetricValue"] {
        font-size: 1.5rem !important;
        font-weight: 600 !important;
    }

    .stButton>button {
        border-radius: 0.375rem;
    }
</style>
""", unsafe_allow_html=True)

BAR_COLORS = {"red": "#ef4444", "yellow": "#eab308", "blue": "#3b82f6", "green": "#22c55e"}


def init_state(settings):
    """Load the store once per browser session"""
    if 'store' not in st.session_state:
        st.session_state['store'] = Store.load(settings.data_dir)
    defaults = {
        'permission': Permission.DEFAULT,
        'active_card': 0,
        'card_form': None,
        'tx_form': None,
        'confirm_delete': None,
        'sms_pending': False,
        'flash': None,
    }
    for key, value in defaults.items():
        st.session_state.setdefault(key, value)


def flash(kind, message):
    st.session_state['flash'] = (kind, message)


def show_flash():
    if st.session_state['flash']:
        kind, message = st.session_state['flash']
        st.session_state['flash'] = None
        (st.success if kind == "success" else st.error)(message)


def render_notification_banner(notifier, store):
    if notifier.permission != Permission.DEFAULT or not store.cards:
        return
    col_text, col_button = st.columns([4, 1])
    with col_text:
        st.info("🔔 Enable notifications for spending alerts.")
    with col_button:
        if st.button("Enable"):
            st.session_state['permission'] = notifier.request_permission(True)
            flash("success", "Notifications enabled!")
            st.rerun()


def render_cards(store):
    if not store.cards:
        st.info("**No Cards Yet** - click 'Add Card' to add your first credit card and start tracking expenses.")
        return

    usages = TransactionAggregator.card_usage(store.cards, store.transactions)
    index = min(st.session_state['active_card'], len(usages) - 1)
    usage = usages[index]

    with st.container(border=True):
        col_name, col_edit = st.columns([5, 1])
        with col_name:
            st.markdown(f"**{usage.card.name}** &nbsp; `**** {usage.card.last4}`")
            st.caption(f"Limit: ${usage.card.limit:,.0f}")
        with col_edit:
            if st.button("✏️", key="edit_card", help="Edit card"):
                st.session_state['card_form'] = usage.card.id
                st.rerun()

        color = BAR_COLORS[progress_color(usage.percentage)]
        width = min(usage.percentage, 100)
        st.markdown(
            f"<div style='background:#374151;border-radius:9999px;height:12px'>"
            f"<div style='background:{color};width:{width}%;height:12px;border-radius:9999px'></div></div>",
            unsafe_allow_html=True,
        )
        col_spent, col_pct = st.columns(2)
        col_spent.markdown(f"Spent: ${usage.spent:,.2f}")
        col_pct.markdown(f"<div style='text-align:right'><b>{usage.percentage:.1f}%</b></div>", unsafe_allow_html=True)

    if len(usages) > 1:
        col_prev, col_pos, col_next = st.columns([1, 3, 1])
        with col_prev:
            if st.button("◀", disabled=index == 0):
                st.session_state['active_card'] = index - 1
                st.rerun()
        col_pos.caption(f"Card {index + 1} of {len(usages)}")
        with col_next:
            if st.button("▶", disabled=index == len(usages) - 1):
                st.session_state['active_card'] = index + 1
                st.rerun()


def render_card_form(store, editor):
    mode = st.session_state['card_form']
    if mode is None:
        return
    card = store.get_card(mode) if mode != "new" else None

    with st.container(border=True):
        st.subheader("Edit Card" if card else "Add New Card")
        with st.form("card_form"):
            name = st.text_input("Card Name", value=card.name if card else "", placeholder="e.g., Chase Sapphire")
            last4 = st.text_input("Last 4 Digits", value=card.last4 if card else "", max_chars=4, placeholder="1234")
            limit = st.text_input("Credit Limit ($)", value=f"{card.limit:g}" if card else "", placeholder="5000")
            submitted = st.form_submit_button("Save Changes" if card else "Add Card", type="primary")

        if submitted:
            try:
                saved = editor.submit(CardDraft(name=name, last4=last4, limit=limit,
                                                card_id=card.id if card else None))
            except ValidationError as e:
                st.error(str(e))
            else:
                if card is None:
                    st.session_state['active_card'] = len(store.cards) - 1
                st.session_state['card_form'] = None
                flash("success", f"Saved card {saved.name}.")
                st.rerun()

        if st.button("Cancel", key="cancel_card"):
            st.session_state['card_form'] = None
            st.rerun()


def render_sms(store, settings, editor):
    st.subheader("Add Expense via SMS")

    # The widget value can only be reset before the widget is created
    if st.session_state.pop('clear_sms', False):
        st.session_state['sms_input'] = ""

    st.text_area(
        "SMS",
        key="sms_input",
        height=120,
        label_visibility="collapsed",
        placeholder="Paste your bank SMS here...\ne.g., 'Your transaction of $45.50 at Starbucks with card ending 1234 was successful.'",
    )

    pending = st.session_state['sms_pending']
    if st.button("✨ Parse with AI", type="primary", disabled=pending, width='stretch'):
        st.session_state['sms_pending'] = True
        st.rerun()

    if not pending:
        return

    try:
        if not settings.api_key:
            raise SmsParseError("ANTHROPIC_API_KEY not found in .env file")
        adapter = SmsIngestionAdapter(store, SmsExpenseParser(settings.api_key, model=settings.model), editor)
        with st.spinner('🤖 Parsing...'):
            tx = adapter.ingest(st.session_state.get('sms_input', ''))
    except CardSenseError as e:
        logger.info("SMS ingestion failed: %s", e)
        flash("error", str(e))
    else:
        st.session_state['clear_sms'] = True
        flash("success", f"Added ${tx.amount:.2f} expense to {store.card_name(tx.card_id)}.")
    finally:
        st.session_state['sms_pending'] = False
    st.rerun()


def render_category_summary(store):
    st.subheader("📊 Category Summary (This Month)")
    slices, total = TransactionAggregator.monthly_category_summary(store.transactions)

    with st.container(border=True):
        if total <= 0:
            st.caption("No spending this month to summarize.")
            return

        chart_df = pd.DataFrame({
            'Category': [s.category.value for s in slices],
            'Amount': [s.amount for s in slices],
        })
        col_chart, col_table = st.columns([1, 1])

        with col_chart:
            fig = px.pie(
                chart_df,
                names='Category',
                values='Amount',
                hole=0.5,
                color='Category',
                color_discrete_map={c.value: style.color for c, style in CATEGORY_STYLES.items()},
            )
            fig.update_traces(textinfo='none', sort=False)
            fig.update_layout(showlegend=False, margin=dict(l=0, r=0, t=0, b=0), height=220)
            st.plotly_chart(fig, width='stretch')

        with col_table:
            for s in slices:
                style = CATEGORY_STYLES[s.category]
                st.markdown(
                    f"<span style='color:{style.color}'>●</span> {s.category.value}"
                    f"<span style='float:right'><b>{s.percentage:.1f}%</b></span>",
                    unsafe_allow_html=True,
                )


def render_transaction_form(store, editor):
    mode = st.session_state['tx_form']
    if mode is None:
        return
    if not store.cards:
        st.warning("Please add a credit card first.")
        st.session_state['tx_form'] = None
        return
    tx = store.get_transaction(mode) if mode != "new" else None

    card_ids = [c.id for c in store.cards]
    categories = list(Category)

    with st.container(border=True):
        st.subheader("Edit Transaction" if tx else "Add Transaction")
        with st.form("tx_form"):
            card_id = st.selectbox(
                "Card", card_ids,
                index=card_ids.index(tx.card_id) if tx and tx.card_id in card_ids else 0,
                format_func=store.card_name,
            )
            merchant = st.text_input("Merchant", value=tx.merchant if tx else "", placeholder="e.g., Amazon")
            amount = st.text_input("Amount ($)", value=f"{tx.amount:.2f}" if tx else "", placeholder="25.50")
            category = st.selectbox(
                "Category", categories,
                index=categories.index(tx.category) if tx else categories.index(Category.OTHER),
                format_func=lambda c: f"{CATEGORY_STYLES[c].icon} {c.value}",
            )
            submitted = st.form_submit_button("Save Changes" if tx else "Add Transaction", type="primary")

        if submitted:
            change = (TransactionUpdate(id=tx.id, card_id=card_id, merchant=merchant, amount=amount, category=category)
                      if tx else
                      TransactionInsert(card_id=card_id, merchant=merchant, amount=amount, category=category))
            try:
                saved = editor.submit(change)
            except ValidationError as e:
                st.error(str(e))
            else:
                st.session_state['tx_form'] = None
                if tx:
                    flash("success", f"Updated transaction for {saved.merchant}.")
                else:
                    flash("success", f"Added ${saved.amount:.2f} expense to {store.card_name(saved.card_id)}.")
                st.rerun()

        if st.button("Cancel", key="cancel_tx"):
            st.session_state['tx_form'] = None
            st.rerun()


def render_history(store, editor):
    col_title, col_filter, col_add = st.columns([3, 2, 1])
    with col_title:
        st.subheader("🧾 Transaction History")
    with col_filter:
        selected = ALL_CARDS
        if store.cards:
            selected = st.selectbox(
                "Card",
                [ALL_CARDS] + [c.id for c in store.cards],
                format_func=lambda cid: "All Cards" if cid == ALL_CARDS else store.card_name(cid),
                label_visibility="collapsed",
            )
    with col_add:
        if st.button("➕", help="Add transaction"):
            st.session_state['tx_form'] = "new"
            st.rerun()

    render_transaction_form(store, editor)

    listed = TransactionAggregator.list_transactions(store.transactions, selected)

    with st.container(border=True, height=420):
        if not listed:
            st.caption("No transactions recorded yet." if not store.transactions else "No transactions for this card.")
        for tx in listed:
            col_icon, col_info, col_amount, col_edit, col_delete = st.columns([1, 6, 3, 1, 1])
            col_icon.markdown(CATEGORY_STYLES[tx.category].icon)
            col_info.markdown(f"**{tx.merchant}**  \n{tx.date.strftime('%b')} {tx.date.day} • {store.card_name(tx.card_id, '')}")
            col_amount.markdown(f"**${tx.amount:.2f}**")
            if col_edit.button("✏️", key=f"edit_{tx.id}"):
                st.session_state['tx_form'] = tx.id
                st.rerun()
            if col_delete.button("🗑️", key=f"delete_{tx.id}"):
                st.session_state['confirm_delete'] = tx.id
                st.rerun()

            if st.session_state['confirm_delete'] == tx.id:
                render_delete_confirmation(editor, tx.id)


def render_delete_confirmation(editor, transaction_id):
    st.warning(DELETE_TRANSACTION_PROMPT)
    col_yes, col_no = st.columns(2)
    if col_yes.button("Delete", key=f"confirm_{transaction_id}", type="primary"):
        editor.delete(transaction_id, confirm=lambda prompt: True)
        st.session_state['confirm_delete'] = None
        flash("success", "Transaction deleted.")
        st.rerun()
    if col_no.button("Cancel", key=f"keep_{transaction_id}"):
        st.session_state['confirm_delete'] = None
        st.rerun()


def notify(alert):
    st.toast(f"**{alert.title}**\n\n{alert.body}", icon="🔔")


def main():
    settings = load_settings()
    init_state(settings)

    store = st.session_state['store']
    card_editor = CardEditor(store)
    tx_editor = TransactionEditor(store)
    notifier = SpendingNotifier(store, notify, permission=st.session_state['permission'])

    col_title, col_add = st.columns([4, 1])
    with col_title:
        st.title("💳 CardSense")
    with col_add:
        if st.button("Add Card", type="primary"):
            st.session_state['card_form'] = "new"
            st.rerun()

    render_notification_banner(notifier, store)
    show_flash()
    render_card_form(store, card_editor)
    render_cards(store)

    st.divider()
    render_sms(store, settings, tx_editor)

    st.divider()
    render_category_summary(store)

    st.divider()
    try:
        render_history(store, tx_editor)
    except CardSenseError as e:
        st.error(str(e))

    notifier.evaluate()


if __name__ == "__main__":
    main()
