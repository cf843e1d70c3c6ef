"""Cloud Billing Dashboard: cost trend, service share and top cost drivers.

Launch:
    streamlit run billing_dashboard/app.py
"""

import streamlit as st

from billing_dashboard.api_client import BillingAPIClient
from billing_dashboard.components import (
    build_service_figure,
    build_trend_figure,
    format_updated_at,
    render_auto_refresh,
    render_cost_driver_table,
    render_metric_row,
    render_source_banner,
)
from billing_dashboard.config import RANGE_LABELS
from billing_dashboard.state import get_state

# ------------------------------------------------------------------
# Page config
# ------------------------------------------------------------------

st.set_page_config(
    page_title="GCP Billing Dashboard",
    page_icon="☁",
    layout="wide",
)

client = BillingAPIClient()
state = get_state(st.session_state)

if not state.settings_loaded:
    state.apply_settings(client.get_settings())

# ------------------------------------------------------------------
# Header
# ------------------------------------------------------------------

head, range_col, setup_col = st.columns([3, 1, 1])
with head:
    st.title("Google Cloud Billing Dashboard")
    st.caption("Save a service-account connection once, then billing is queried from BigQuery by the API.")
with range_col:
    ranges = list(RANGE_LABELS)
    selected = st.selectbox(
        "Time range",
        ranges,
        index=ranges.index(state.range),
        format_func=RANGE_LABELS.get,
        key="range_select",
    )
    state.select_range(selected)
with setup_col:
    st.write("")
    if st.button("BigQuery Setup", use_container_width=True):
        state.show_settings = not state.show_settings

banner = st.empty()

# ------------------------------------------------------------------
# Connection settings
# ------------------------------------------------------------------

if state.show_settings:
    st.subheader("Connect BigQuery")
    st.caption("Paste your credentials once. They are stored locally and reused after refresh.")
    with st.form("settings_form"):
        state.form.project_id = st.text_input("Project ID", value=state.form.project_id)
        state.form.dataset = st.text_input("Dataset (billing export dataset)", value=state.form.dataset)
        state.form.table = st.text_input("Table (billing export table)", value=state.form.table)
        state.form.service_account_json = st.text_area(
            "Service account JSON",
            value=state.form.service_account_json,
            height=160,
        )
        submitted = st.form_submit_button("Save and Connect")
    if submitted:
        with st.spinner("Saving..."):
            state.apply_save(
                client.save_settings(
                    state.form.project_id,
                    state.form.dataset,
                    state.form.table,
                    state.form.service_account_json,
                )
            )
        if not state.show_settings:
            st.rerun()

if state.settings_message:
    st.caption(state.settings_message)

# ------------------------------------------------------------------
# Billing data
# ------------------------------------------------------------------

metric_slot = st.empty()

state.start_loading()
with metric_slot.container():
    render_metric_row(state.snapshot, loading=state.loading)
with st.spinner("Refreshing billing data..."):
    state.apply_billing(client.get_billing(state.range))

with banner.container():
    render_source_banner(state.source, state.is_configured)

snapshot = state.snapshot
with metric_slot.container():
    render_metric_row(snapshot, loading=state.loading)

if state.error:
    st.error(state.error)

if snapshot:
    trend_col, pie_col = st.columns([2, 1])
    with trend_col:
        st.subheader("Cost Trend")
        st.caption(RANGE_LABELS.get(snapshot.get("range"), ""))
        st.plotly_chart(build_trend_figure(snapshot), use_container_width=True)
    with pie_col:
        st.subheader("Spend by Service")
        st.caption("Distribution of current spend")
        st.plotly_chart(build_service_figure(snapshot), use_container_width=True)

    title_col, updated_col = st.columns([4, 1])
    with title_col:
        st.subheader("Top Cost Drivers")
    with updated_col:
        st.caption(f"Updated {format_updated_at(snapshot.get('updatedAt', ''))}")
    render_cost_driver_table(snapshot)

render_auto_refresh()
