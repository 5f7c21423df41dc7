"""
app.py
Streamlit Membership Management System.
Run: streamlit run app.py
"""

from __future__ import annotations

import streamlit as st

import auth
import config
import db
import memberships
import utils
from auth import Session
from errors import MembershipError
from models import Duration, MembershipStatus

st.set_page_config(page_title="Membership Management System", layout="wide")

STATUS_BADGES = {
    MembershipStatus.active: "🟢 active",
    MembershipStatus.cancelled: "🔴 cancelled",
    MembershipStatus.expired: "⚪ expired",
}


def init_once():
    settings = config.get_settings()
    config.configure_logging(settings)
    db.init_db(settings.db_path)


def current_session() -> Session | None:
    return st.session_state.get("session")


def logout():
    st.session_state.session = None
    st.session_state.found_membership_id = None
    st.success("Logged out.")


def login_screen():
    st.title("🔐 Membership Management")

    tab_login, tab_signup = st.tabs(["Sign in", "Sign up"])
    with tab_login:
        email = st.text_input("Email", key="login_email")
        password = st.text_input("Password", type="password", key="login_password")
        if st.button("Sign in", type="primary"):
            user = auth.login(email, password)
            if user:
                st.session_state.session = Session.for_user(user)
                st.rerun()
            else:
                st.error("Invalid email or password.")

    with tab_signup:
        st.info("The first account created becomes the administrator. Everyone after that is a regular user.")
        full_name = st.text_input("Full name", key="signup_name")
        email = st.text_input("Email", key="signup_email")
        p1 = st.text_input("Password", type="password", key="signup_p1")
        p2 = st.text_input("Confirm password", type="password", key="signup_p2")
        if st.button("Create account", type="primary"):
            errors = utils.validate_password(p1, p2)
            if errors:
                for e in errors:
                    st.error(e)
                return
            try:
                user = auth.sign_up(email, full_name, p1)
            except MembershipError as e:
                st.error(str(e))
                return
            st.session_state.session = Session.for_user(user)
            st.success(f"Account created ({user.role.value}).")
            st.rerun()


def membership_card(m):
    c1, c2, c3 = st.columns(3)
    with c1:
        st.markdown(f"**{m.membership_number}**  \n{STATUS_BADGES[m.status]}")
        st.caption(f"Duration: {m.duration.label}")
    with c2:
        st.write(f"**{m.member_name}**")
        st.caption(f"{m.email} · {m.phone}")
        st.caption(m.address)
    with c3:
        st.write(f"Start: **{m.start_date:%b %d, %Y}**")
        st.write(f"End: **{m.end_date:%b %d, %Y}**")


def dashboard_page(session: Session):
    st.header("📊 Dashboard")

    memberships.expire_overdue()
    summary = utils.status_summary(memberships.status_counts())

    st.caption(f"Signed in as {session.full_name} · role: **{session.role.value}**")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total memberships", summary["total"])
    c2.metric("Active", summary["active"])
    c3.metric("Cancelled", summary["cancelled"])
    c4.metric("Expired", summary["expired"])

    st.divider()

    days = config.get_settings().expiry_warning_days
    st.subheader(f"Expiring soon (next {days} days)")
    rows = memberships.expiring_within(days)
    if rows:
        st.dataframe(utils.memberships_frame(rows), use_container_width=True, hide_index=True)
    else:
        st.caption(f"No memberships expiring in the next {days} days.")


def add_membership_page(session: Session):
    st.header("➕ Add Membership")
    st.caption("All fields are mandatory")

    col1, col2 = st.columns(2)
    with col1:
        member_name = st.text_input("Member name")
        email = st.text_input("Email")
        phone = st.text_input("Phone number")
    with col2:
        address = st.text_input("Address")
        duration = st.radio(
            "Membership duration",
            options=list(Duration),
            format_func=lambda d: d.label + (" (Default)" if d == Duration.six_months else ""),
            index=0,
        )

    if st.button("Create membership", type="primary"):
        errors = utils.validate_membership_inputs(member_name, email, phone, address, duration)
        if errors:
            for e in errors:
                st.error(e)
            return
        try:
            m = memberships.create_membership(session, member_name, email, phone, address, duration)
        except MembershipError as e:
            st.error(str(e))
            return
        st.success(f"Membership created successfully! Number: {m.membership_number} (ends {m.end_date})")


def update_membership_page(session: Session):
    st.header("🔁 Update Membership")

    memberships.expire_overdue()

    c1, c2 = st.columns([2, 1])
    with c1:
        number = st.text_input("Membership number", placeholder="MEM000001")
    with c2:
        st.write("")
        if st.button("Search"):
            try:
                found = memberships.get_by_number(number)
            except MembershipError as e:
                st.error(str(e))
                return
            if not found:
                st.error("Membership not found.")
                st.session_state.found_membership_id = None
            else:
                st.session_state.found_membership_id = found.id

    membership_id = st.session_state.get("found_membership_id")
    if not membership_id:
        return
    m = memberships.get_by_id(membership_id)
    if not m:
        return

    st.divider()
    membership_card(m)
    st.divider()

    if m.status == MembershipStatus.cancelled:
        st.warning("This membership has been cancelled and cannot be extended.")
        return

    options = list(Duration) + ["cancel"]
    labels = {d: f"Extend by {d.label}" for d in Duration}
    if m.status == MembershipStatus.expired:
        labels = {d: f"Renew for {d.label} (from today)" for d in Duration}
    labels["cancel"] = "Cancel membership"
    if m.status != MembershipStatus.active:
        options.remove("cancel")
    action = st.radio("Action", options=options, format_func=lambda o: labels[o])

    if st.button("Apply", type="primary"):
        try:
            if action == "cancel":
                updated = memberships.cancel_membership(session, m.id, expected_version=m.version)
                st.success(f"{updated.membership_number} cancelled.")
            else:
                updated = memberships.extend_membership(session, m.id, action, expected_version=m.version)
                st.success(f"{updated.membership_number} extended until {updated.end_date:%b %d, %Y}.")
        except MembershipError as e:
            st.error(str(e))
            return
        st.rerun()


def reports_page(session: Session):
    st.header("🧾 Reports")

    memberships.expire_overdue()

    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("Search (name/email/phone/number)")
        status_filter = st.selectbox("Status", ["All"] + [s.value for s in MembershipStatus])

    summary = utils.status_summary(memberships.status_counts())
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total", summary["total"])
    c2.metric("Active", summary["active"])
    c3.metric("Cancelled", summary["cancelled"])
    c4.metric("Expired", summary["expired"])

    rows = memberships.list_memberships(search=search, status_filter=status_filter)
    df = utils.memberships_frame(rows)
    st.dataframe(df, use_container_width=True, hide_index=True)
    if rows:
        st.download_button(
            "Download memberships.csv",
            data=utils.to_csv_bytes(df),
            file_name="memberships.csv",
            mime="text/csv",
        )

    st.divider()

    st.subheader("New memberships by month")
    st.dataframe(utils.signups_by_month(memberships.list_memberships()), use_container_width=True, hide_index=True)


def transactions_page(session: Session):
    st.header("💳 Transactions")

    memberships.expire_overdue()

    events = memberships.list_events()
    df = utils.events_frame(events, memberships.member_labels())
    if events:
        st.dataframe(df, use_container_width=True, hide_index=True)
        st.download_button(
            "Download transactions.csv",
            data=utils.to_csv_bytes(df),
            file_name="transactions.csv",
            mime="text/csv",
        )
    else:
        st.caption("No transactions yet.")


def settings_page(session: Session):
    st.header("⚙️ Settings")

    st.subheader("Change password")
    p1 = st.text_input("New password", type="password")
    p2 = st.text_input("Confirm new password", type="password")
    if st.button("Update password", type="primary"):
        errors = utils.validate_password(p1, p2)
        if errors:
            for e in errors:
                st.error(e)
        else:
            auth.change_password(session, p1)
            st.success("Password updated.")

    if session.is_admin:
        st.divider()

        st.subheader("Sample data")
        st.caption("Insert 3 sample memberships, one cancelled (adds new rows each run).")
        if st.button("Insert sample data"):
            try:
                memberships.insert_sample_data(session)
            except MembershipError as e:
                st.error(str(e))
                return
            st.success("Sample data inserted.")
            st.rerun()


PAGES = {
    "Dashboard": (dashboard_page, False),
    "Add Membership": (add_membership_page, True),
    "Update Membership": (update_membership_page, True),
    "Reports": (reports_page, False),
    "Transactions": (transactions_page, False),
    "Settings": (settings_page, False),
}


def main_app(session: Session):
    st.sidebar.title("🪪 Memberships")
    st.sidebar.caption(f"Logged in as: {session.email} ({session.role.value})")

    pages = [name for name, (_, admin_only) in PAGES.items() if session.is_admin or not admin_only]
    if st.session_state.get("page") not in pages:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.sidebar.button("Logout"):
        logout()
        st.rerun()

    page, _ = PAGES[st.session_state.page]
    page(session)


# --------- App entry ---------

def run():
    init_once()

    session = current_session()
    if session is None:
        login_screen()
        return

    main_app(session)


if __name__ == "__main__":
    run()
