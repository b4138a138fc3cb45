"""
Streamlit Frontend for Commute Ledger

Four tabs, as the group is used to:
1. Fahrten - enter commutes and see their price per person
2. Autos - manage cars and their owners
3. Personen - manage participants
4. Abrechnungen - monthly gross/net debts and CSV download

Form state lives in Streamlit widgets and is handed to the ledger as
immutable drafts. Every tab re-reads a fresh snapshot.
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st

from commute_ledger.audit import create_correlation_id
from commute_ledger.config import validate_all_settings
from commute_ledger.engine import format_amount, list_months, month_label
from commute_ledger.errors import CommuteLedgerError, PersistenceError
from commute_ledger.models import CarDraft, CommuteDraft, LedgerSnapshot, TripType
from commute_ledger.orchestrator import CommuteLedger, create_app_components


st.set_page_config(
    page_title="Pendel-Kostenrechner",
    page_icon="🚗",
    layout="wide",
)

NEW_OWNER = "new"
TRIP_TYPE_LABELS = {
    TripType.ROUNDTRIP: "Hin- und Rückfahrt",
    TripType.ONEWAY: "Einfache Fahrt",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_ledger() -> CommuteLedger:
    """Get or create the ledger (cached)."""
    ledger, sheets_client = create_app_components(use_storage=True)
    if sheets_client is None:
        st.warning("Google Sheets ist nicht konfiguriert. Daten werden nur im Speicher gehalten.")
    return ledger


def money(ledger: CommuteLedger, amount: Decimal) -> str:
    """Amount in cents with the configured currency symbol."""
    return format_amount(amount, ledger.currency_symbol)


def show_warnings(validation) -> bool:
    """Show validation warnings; True if there were any."""
    for issue in validation.warnings:
        st.warning(issue.message)
    return bool(validation.warnings)


def main():
    """Main application entry point."""
    ledger = get_ledger()

    col1, col2 = st.columns([6, 1])
    with col1:
        st.title("🚗 Pendel-Kostenrechner")
    with col2:
        if st.button("🔄", help="Daten aktualisieren"):
            st.rerun()

    try:
        snapshot = run_async(ledger.load_snapshot())
    except PersistenceError as e:
        st.error(f"Fehler: {e}")
        if st.button("Erneut versuchen", type="primary"):
            st.rerun()
        st.stop()

    render_connection_status()

    tab_commutes, tab_cars, tab_persons, tab_settlements = st.tabs(
        ["📅 Fahrten", "🚗 Autos", "👥 Personen", "📈 Abrechnungen"]
    )

    try:
        with tab_commutes:
            render_commutes_tab(ledger, snapshot)
        with tab_cars:
            render_cars_tab(ledger, snapshot)
        with tab_persons:
            render_persons_tab(ledger, snapshot)
        with tab_settlements:
            render_settlements_tab(ledger, snapshot)
    except Exception as e:
        run_async(ledger.log_unexpected_error("render", e))
        st.error(f"Unerwarteter Fehler: {e}")


def render_connection_status():
    """Show in the sidebar which backends are configured."""
    status = validate_all_settings()

    st.sidebar.markdown("### Verbindungsstatus")
    if status.get("google_sheets", False):
        st.sidebar.success("✅ Google Sheets verbunden")
    else:
        st.sidebar.warning("⚠️ Google Sheets nicht konfiguriert")
    if not status.get("app", False):
        st.sidebar.error(f"❌ App-Einstellungen ungültig: {status.get('app_error')}")


def render_commutes_tab(ledger: CommuteLedger, snapshot: LedgerSnapshot):
    """Render commute entry and the list of past commutes."""
    st.subheader("Neue Fahrt")

    if not snapshot.cars or not snapshot.persons:
        st.info("Lege zuerst Autos und Personen an.")
    else:
        with st.form("new_commute", clear_on_submit=True):
            col1, col2 = st.columns(2)
            with col1:
                commute_date = st.date_input("Datum", value=date.today())
            with col2:
                trip_type = st.radio(
                    "Fahrtart",
                    options=list(TripType),
                    format_func=lambda t: TRIP_TYPE_LABELS[t],
                    horizontal=True,
                )

            selected_cars = st.multiselect(
                "Autos",
                options=[car.id for car in snapshot.cars],
                format_func=lambda cid: (
                    f"{snapshot.car_name(cid)} "
                    f"({snapshot.person_name(snapshot.find_car(cid).owner_id)})"
                ),
            )
            selected_persons = st.multiselect(
                "Personen",
                options=[person.id for person in snapshot.persons],
                format_func=snapshot.person_name,
            )

            if st.form_submit_button("➕ Fahrt hinzufügen", type="primary"):
                draft = CommuteDraft(
                    date=commute_date,
                    trip_type=trip_type,
                    selected_cars=selected_cars,
                    selected_persons=selected_persons,
                )
                try:
                    commute, validation = run_async(
                        ledger.add_commute(draft, correlation_id=create_correlation_id())
                    )
                    st.success(
                        f"Fahrt gespeichert: {money(ledger, commute.price_per_person)} pro Person"
                    )
                    if not show_warnings(validation):
                        st.rerun()
                except CommuteLedgerError as e:
                    st.error(str(e))

    st.subheader("Bisherige Fahrten")
    if not snapshot.commutes:
        st.markdown("*Noch keine Fahrten erfasst.*")

    for commute in snapshot.commutes:
        col1, col2 = st.columns([8, 1])
        with col1:
            cars = ", ".join(snapshot.car_name(cid) for cid in commute.selected_cars)
            drivers = ", ".join(snapshot.person_name(pid) for pid in commute.drivers)
            persons = ", ".join(snapshot.person_name(pid) for pid in commute.selected_persons)
            st.markdown(
                f"**{commute.date.strftime('%d.%m.%Y')}** · "
                f"{TRIP_TYPE_LABELS[commute.trip_type]} · "
                f"**{money(ledger, commute.price_per_person)}** pro Person  \n"
                f"Autos: {cars} · Fahrer: {drivers}  \n"
                f"Personen: {persons}"
            )
        with col2:
            if st.button("🗑️", key=f"delete_commute_{commute.id}"):
                try:
                    run_async(ledger.delete_commute(commute.id))
                    st.rerun()
                except CommuteLedgerError as e:
                    st.error(f"Fehler beim Löschen der Fahrt: {e}")


def render_cars_tab(ledger: CommuteLedger, snapshot: LedgerSnapshot):
    """Render car management."""
    st.subheader("Autos verwalten")

    owner_options = [person.id for person in snapshot.persons] + [NEW_OWNER]

    with st.form("new_car", clear_on_submit=True):
        col1, col2, col3 = st.columns(3)
        with col1:
            name = st.text_input("Auto Name", placeholder="z.B. BMW X5")
        with col2:
            owner = st.selectbox(
                "Besitzer",
                options=owner_options,
                format_func=lambda o: (
                    "+ Neue Person erstellen" if o == NEW_OWNER else snapshot.person_name(o)
                ),
            )
            new_owner_name = st.text_input("Name des neuen Besitzers")
        with col3:
            cost = st.number_input(
                "Kosten Hin- und Rückfahrt",
                min_value=0.0,
                step=0.5,
                format="%.3f",
            )

        if st.form_submit_button("➕ Auto hinzufügen", type="primary"):
            draft = CarDraft(
                name=name,
                roundtrip_cost=Decimal(str(cost)),
                owner_id=None if owner in (None, NEW_OWNER) else owner,
                new_owner_name=new_owner_name if owner == NEW_OWNER else None,
            )
            try:
                _, validation = run_async(ledger.add_car(draft))
                if not show_warnings(validation):
                    st.rerun()
            except CommuteLedgerError as e:
                st.error(str(e))

    for car in snapshot.cars:
        col1, col2 = st.columns([8, 1])
        with col1:
            st.markdown(
                f"**{car.name}** · Besitzer: {snapshot.person_name(car.owner_id)} · "
                f"Hin/Rück: {money(ledger, car.roundtrip_cost)} · "
                f"Einfach: {money(ledger, car.oneway_cost)}"
            )
        with col2:
            if st.button("🗑️", key=f"delete_car_{car.id}"):
                try:
                    run_async(ledger.delete_car(car.id))
                    st.rerun()
                except CommuteLedgerError as e:
                    st.error(f"Fehler beim Löschen des Autos: {e}")


def render_persons_tab(ledger: CommuteLedger, snapshot: LedgerSnapshot):
    """Render person management."""
    st.subheader("Personen verwalten")

    with st.form("new_person", clear_on_submit=True):
        name = st.text_input("Name")
        if st.form_submit_button("➕ Person hinzufügen", type="primary"):
            try:
                run_async(ledger.add_person(name))
                st.rerun()
            except CommuteLedgerError as e:
                st.error(str(e))

    for person in snapshot.persons:
        col1, col2 = st.columns([8, 1])
        with col1:
            owned = snapshot.cars_owned_by(person.id)
            suffix = f" · 🚗 {', '.join(car.name for car in owned)}" if owned else ""
            st.markdown(f"**{person.name}**{suffix}")
        with col2:
            if st.button("🗑️", key=f"delete_person_{person.id}"):
                try:
                    run_async(ledger.delete_person(person.id))
                    st.rerun()
                except CommuteLedgerError as e:
                    st.error(str(e))


def record_download(ledger: CommuteLedger, month: str, filename: str):
    """Audit a CSV download; runs only when the button is clicked."""
    run_async(ledger.record_export(month, filename, correlation_id=create_correlation_id()))


def render_settlements_tab(ledger: CommuteLedger, snapshot: LedgerSnapshot):
    """Render monthly settlements with CSV download."""
    st.subheader("Monatliche Abrechnungen")

    months = list_months(snapshot.commutes)
    if not months:
        st.markdown("*Noch keine Fahrten erfasst.*")
        return

    for month in months:
        settlement = run_async(ledger.monthly_settlement(month, snapshot=snapshot))
        with st.expander(month_label(month), expanded=month == months[0]):
            col1, col2 = st.columns(2)
            with col1:
                st.markdown("**Gesamtübersicht**")
                for edge in settlement.gross_edges:
                    st.markdown(f"{edge.debtor} → {edge.creditor}: {money(ledger, edge.amount)}")
            with col2:
                st.markdown("**Netto-Abrechnung (nach Verrechnung)**")
                if not settlement.net_edges and not settlement.settled_pairs:
                    st.markdown("*Keine offenen Beträge.*")
                for edge in settlement.net_edges:
                    st.markdown(
                        f"**{edge.debtor}** schuldet **{edge.creditor}** "
                        f"{money(ledger, edge.amount)}"
                    )
                for first, second in settlement.settled_pairs:
                    st.markdown(f"{first} ↔ {second}: ausgeglichen")

            filename, content = ledger.render_report(settlement)
            st.download_button(
                "⬇️ CSV herunterladen",
                data=content.encode("utf-8"),
                file_name=filename,
                mime="text/csv",
                key=f"download_{month}",
                on_click=record_download,
                args=(ledger, month, filename),
            )


if __name__ == "__main__":
    main()
