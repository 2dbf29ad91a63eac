"""
Streamlit viewer for the Service Pricing Engine.

Features:
- Option breakdown by category with quantity explanations
- "Data missing" marker for indeterminate components
- Organization customization view (swapped/added lines, price override)
- Package tier comparison with required/optional/upgrade values
"""
import streamlit as st
import pandas as pd
from datetime import datetime

from service_pricing.config.settings import get_settings
from service_pricing.engine import ServicePricingEngine
from service_pricing.engine.errors import ServicePricingError
from service_pricing.engine.models import CATEGORY_LABELS, money
from service_pricing.store import CsvCatalogStore


st.set_page_config(
    page_title="Service Pricing",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def get_engine():
    """Get cached engine instance."""
    settings = get_settings()
    return ServicePricingEngine(CsvCatalogStore(settings.data_dir, settings.overrides_path))


try:
    engine = get_engine()
    settings = get_settings()
except Exception as e:
    st.error(f"System Error: {e}")
    st.stop()

store = engine.store
places = settings.money_places


def fmt(value) -> str:
    return f"${money(value, places):,}"


# ============================================================================
# SIDEBAR: Organization context
# ============================================================================
with st.sidebar:
    st.header("Organization")
    organization_id = st.text_input("Organization ID", value="") or None
    st.caption("Leave blank to price the shared base catalog.")

    st.divider()
    st.caption(
        f"{len(store.line_items)} line items · {len(store.options)} options · "
        f"{len(store.packages)} packages"
    )
    if st.button("Reload catalog"):
        store.reload_data()
        st.rerun()


st.title("Service Pricing")
st.caption(f"v1.0 | {datetime.now().strftime('%Y-%m-%d')}")

tab1, tab2 = st.tabs(["Option Breakdown", "Packages"])


# ============================================================================
# TAB 1: OPTION BREAKDOWN
# ============================================================================
with tab1:
    if not store.options:
        st.info("No service options in the catalog.")
    else:
        option_names = {o.id: f"{o.name} ({o.id})" for o in store.options.values()}
        col1, col2 = st.columns([2, 1])
        with col1:
            option_id = st.selectbox("Service option", list(option_names), format_func=option_names.get)
        with col2:
            quantity = st.number_input(
                f"Quantity ({store.options[option_id].unit})", min_value=0.0, value=1.0, step=1.0
            )

        try:
            breakdown = engine.compose(option_id, str(quantity), organization_id)
        except ServicePricingError as e:
            st.error(e.message)
            st.stop()

        m1, m2, m3 = st.columns(3)
        m1.metric("Total", fmt(breakdown.total))
        m2.metric("Items total", fmt(breakdown.items_total))
        m3.metric("Customized", "Yes" if breakdown.has_override else "No")

        if breakdown.price_override is not None:
            st.info(f"Organization price override {fmt(breakdown.price_override)} replaces the item total.")

        for category, lines in breakdown.lines_by_category().items():
            subtotal = breakdown.category_subtotals.get(category)
            st.subheader(f"{CATEGORY_LABELS.get(category, category)} · {fmt(subtotal)}")
            rows = []
            for line in lines:
                rows.append({
                    "Item": line.name,
                    "How": line.quantity_display,
                    "Strategy": line.strategy.value,
                    "Source": line.source,
                    "Total": "data missing" if line.indeterminate else fmt(line.total),
                })
            st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

        if breakdown.warnings:
            with st.expander(f"⚠️ {len(breakdown.warnings)} warnings"):
                for warning in breakdown.warnings:
                    st.caption(warning)

        with st.expander("🔍 Calculation trace"):
            st.text(breakdown.get_trace_text())
            for line in breakdown.lines:
                st.text(f"{line.name}\n{line.get_trace_text()}")


# ============================================================================
# TAB 2: PACKAGES
# ============================================================================
with tab2:
    if not store.packages:
        st.info("No packages in the catalog.")
    else:
        package_names = {p.id: f"{p.name} [{p.level}]" for p in store.packages.values()}
        selected = st.multiselect(
            "Packages to compare", list(package_names), default=list(package_names)[:3],
            format_func=package_names.get,
        )
        if selected:
            try:
                comparison = engine.compare_packages(selected, organization_id)
            except ServicePricingError as e:
                st.error(e.message)
                st.stop()

            columns = st.columns(len(comparison))
            for col, totals in zip(columns, comparison):
                with col:
                    with st.container(border=True):
                        st.markdown(f"**{totals.name}**")
                        st.caption(totals.level.title())
                        st.metric("Package price", fmt(totals.required_total))
                        st.caption(
                            f"{totals.required_item_count} required · "
                            f"{totals.optional_item_count} optional · "
                            f"{totals.upgrade_item_count} upgrades"
                        )
                        if totals.optional_value:
                            st.caption(f"Optional add-ons: {fmt(totals.optional_value)}")
                        if totals.upgrade_value:
                            st.caption(f"Upgrades: {fmt(totals.upgrade_value)}")
                        st.caption(f"Total potential: {fmt(totals.total_potential_value)}")
                        if totals.has_indeterminate:
                            st.warning("Some options have missing data")
