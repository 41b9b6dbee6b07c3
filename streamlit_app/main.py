"""
Carbon Credit Registry - Streamlit Dashboard
Projects, verification pipeline and carbon credit management
"""

import streamlit as st
import requests
import pandas as pd
from datetime import datetime, date
import plotly.graph_objects as go
import plotly.express as px

# Page configuration
st.set_page_config(
    page_title="Carbon Credit Registry",
    page_icon="🌍",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Sidebar configuration
st.sidebar.title("⚙️ Configuration")
api_url = st.sidebar.text_input("API Base URL", value="http://localhost:8000", key="api_url")
acting_user = st.sidebar.number_input("Acting user ID", value=1, step=1, min_value=1)


# API helper functions
def make_request(method: str, endpoint: str, data=None, params=None):
    """Make request to API"""
    try:
        url = f"{st.session_state.api_url}{endpoint}"
        response = requests.request(method, url, json=data, params=params, timeout=10)
        response.raise_for_status()
        return response.json() if response.text else {}
    except requests.exceptions.RequestException as e:
        message = str(e)
        if e.response is not None:
            try:
                message = e.response.json()["error"]["message"]
            except (ValueError, KeyError, TypeError):
                pass
        st.error(f"API Error: {message}")
        return None


# Main title
st.title("🌍 Carbon Credit Registry")
st.markdown("**Project registration, verification and credit lifecycle**")

tab1, tab2, tab3, tab4, tab5 = st.tabs(
    ["📊 Dashboard", "🗺️ Projects", "✅ Verification", "🌱 Credits", "🔍 Health"]
)

# ============ DASHBOARD TAB ============
with tab1:
    st.header("Dashboard Overview")

    stats = make_request("GET", "/statistics")
    if stats:
        col1, col2, col3, col4 = st.columns(4)
        with col1:
            st.metric("📁 Total Projects", stats.get("total_projects", 0))
        with col2:
            st.metric("✅ Verified Projects", stats.get("verified_projects", 0))
        with col3:
            st.metric("⏳ Pending Verification", stats.get("pending_verification", 0))
        with col4:
            st.metric("🌱 Credits Issued (tCO2e)", f"{stats.get('total_credits', 0):,}")
        st.caption(f"Last updated: {stats.get('last_updated', '')[:19]}")

    st.divider()

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Verification Pipeline")
        stages = make_request("GET", "/verifications/stages") or []
        pending = make_request("GET", "/verifications", params={"status": "pending"}) or []
        if stages:
            counts = {s["name"]: 0 for s in stages}
            stage_names = {s["id"]: s["name"] for s in stages}
            for v in pending:
                name = stage_names.get(v.get("current_stage_id"))
                if name:
                    counts[name] += 1
            fig = go.Figure(data=[go.Bar(
                x=list(counts.values()),
                y=list(counts.keys()),
                orientation="h",
                marker=dict(color="#00C781")
            )])
            fig.update_layout(height=350, yaxis=dict(autorange="reversed"))
            st.plotly_chart(fig, width="stretch")
        else:
            st.info("No verification stages configured")

    with col2:
        st.subheader("Recent Activity")
        activity = make_request("GET", "/activity", params={"limit": 15})
        if activity:
            df = pd.DataFrame([
                {
                    "When": entry.get("timestamp", "")[:19],
                    "Action": entry.get("action"),
                    "Entity": f"{entry.get('entity_type')} {entry.get('entity_id')}",
                    "Description": entry.get("description"),
                }
                for entry in activity
            ])
            st.dataframe(df, width="stretch", hide_index=True)
        else:
            st.info("No activity yet")

# ============ PROJECTS TAB ============
with tab2:
    st.header("Projects")

    status_filter = st.selectbox(
        "Filter by Status",
        ["All", "draft", "registered", "verified", "rejected"],
        key="project_status_filter"
    )
    params = None if status_filter == "All" else {"status": status_filter}
    projects = make_request("GET", "/projects", params=params) or []

    located = [p for p in projects if p.get("latitude") is not None and p.get("longitude") is not None]
    if located:
        map_df = pd.DataFrame([
            {
                "Project": p["name"],
                "ID": p["project_id"],
                "Category": p["category"],
                "Status": p["status"],
                "lat": p["latitude"],
                "lon": p["longitude"],
                "Reduction": p["estimated_reduction"],
            }
            for p in located
        ])
        fig = px.scatter_geo(
            map_df,
            lat="lat",
            lon="lon",
            color="Category",
            size="Reduction",
            hover_name="Project",
            hover_data=["ID", "Status"],
            projection="natural earth"
        )
        fig.update_layout(height=450)
        st.plotly_chart(fig, width="stretch")

    if projects:
        df = pd.DataFrame([
            {
                "Project ID": p.get("project_id"),
                "Name": p.get("name"),
                "Category": p.get("category"),
                "Methodology": p.get("methodology"),
                "Developer": p.get("developer"),
                "Status": p.get("status"),
                "Est. Reduction (tCO2e)": p.get("estimated_reduction"),
            }
            for p in projects
        ])
        st.dataframe(df, width="stretch", hide_index=True)
    else:
        st.info("No projects found")

    st.divider()

    st.subheader("➕ Register New Project")
    categories = make_request("GET", "/categories") or []
    methodologies = make_request("GET", "/methodologies") or []
    with st.form("create_project_form", border=True):
        col1, col2, col3 = st.columns(3)
        with col1:
            project_id = st.text_input("Project ID", placeholder="KEN-2023-0045")
            name = st.text_input("Name")
            location = st.text_input("Location")
        with col2:
            category = st.selectbox("Category", [c["name"] for c in categories])
            methodology = st.selectbox(
                "Methodology",
                [m["name"] for m in methodologies if m["category"] == category]
            )
            developer = st.text_input("Developer username", value="developer")
        with col3:
            latitude = st.number_input("Latitude", value=0.0, format="%.4f")
            longitude = st.number_input("Longitude", value=0.0, format="%.4f")
            reduction = st.number_input("Estimated reduction (tCO2e)", value=1000, step=100, min_value=0)
        start = st.date_input("Start date", value=date.today())
        end = st.date_input("End date", value=date(date.today().year + 10, 12, 31))
        description = st.text_area("Description")

        if st.form_submit_button("✅ Register Project", width="stretch"):
            result = make_request("POST", "/projects", {
                "project_id": project_id,
                "name": name,
                "description": description,
                "category": category,
                "methodology": methodology,
                "developer": developer,
                "location": location,
                "latitude": latitude,
                "longitude": longitude,
                "start_date": str(start),
                "end_date": str(end),
                "estimated_reduction": int(reduction),
            }, params={"user_id": acting_user})
            if result:
                st.success(f"✅ Project {result.get('project_id')} registered")
                st.rerun()

# ============ VERIFICATION TAB ============
with tab3:
    st.header("Verification")

    stages = make_request("GET", "/verifications/stages") or []
    stage_names = {s["id"]: s["name"] for s in stages}
    verifications = make_request("GET", "/verifications") or []

    if verifications:
        df = pd.DataFrame([
            {
                "ID": v.get("id"),
                "Project": v.get("project_id"),
                "Stage": stage_names.get(v.get("current_stage_id"), "-"),
                "Status": v.get("status"),
                "Submitted": (v.get("submitted_date") or "")[:10],
                "Days Remaining": v.get("days_remaining"),
                "Verifier": v.get("verifier") or "-",
            }
            for v in verifications
        ])
        st.dataframe(df, width="stretch", hide_index=True)
    else:
        st.info("No verification requests")

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("📨 Request Verification")
        with st.form("request_verification_form", border=True):
            project_id = st.text_input("Project ID", key="verify_project_id")
            verifier = st.text_input("Verifier username (optional)")
            estimate = st.date_input("Estimated completion", value=None)
            notes = st.text_area("Notes")
            if st.form_submit_button("📨 Submit", width="stretch"):
                payload = {"project_id": project_id, "notes": notes or None, "user_id": acting_user}
                if verifier:
                    payload["verifier"] = verifier
                if estimate:
                    payload["estimated_completion_date"] = f"{estimate}T00:00:00"
                result = make_request("POST", "/verifications", payload)
                if result:
                    st.success(f"✅ Verification {result.get('id')} opened")
                    st.rerun()

    with col2:
        st.subheader("⏭️ Progress Verification")
        pending_ids = [v["id"] for v in verifications if v.get("status") == "pending"]
        with st.form("progress_verification_form", border=True):
            verification_id = st.selectbox("Verification", pending_ids)
            action = st.radio("Action", ["advance", "approved", "rejected"], horizontal=True)
            if st.form_submit_button("Apply", width="stretch") and verification_id:
                if action == "advance":
                    result = make_request(
                        "POST", f"/verifications/{verification_id}/advance",
                        params={"user_id": acting_user}
                    )
                else:
                    result = make_request(
                        "POST", f"/verifications/{verification_id}/resolve",
                        {"outcome": action, "user_id": acting_user}
                    )
                if result:
                    st.success(f"✅ Verification {verification_id} updated")
                    st.rerun()

# ============ CREDITS TAB ============
with tab4:
    st.header("Carbon Credits")

    status_filter = st.selectbox(
        "Filter by Status",
        ["All", "available", "retired", "transferred"],
        key="credit_status_filter"
    )
    params = None if status_filter == "All" else {"status": status_filter}
    credits = make_request("GET", "/credits", params=params) or []

    if credits:
        df = pd.DataFrame([
            {
                "ID": c.get("id"),
                "Serial Number": c.get("serial_number"),
                "Project": c.get("project_id"),
                "Vintage": c.get("vintage"),
                "Quantity": c.get("quantity"),
                "Owner": c.get("owner"),
                "Status": c.get("status"),
                "Issued": (c.get("issuance_date") or "")[:10],
                "Retired": (c.get("retirement_date") or "-")[:10],
            }
            for c in credits
        ])
        st.dataframe(df, width="stretch", hide_index=True)
    else:
        st.info("No credits found")

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("🌱 Issue Credits")
        with st.form("issue_credits_form", border=True):
            project_id = st.text_input("Project ID", key="issue_project_id")
            vintage = st.text_input("Vintage", value=str(date.today().year - 1))
            quantity = st.number_input("Quantity (tCO2e)", value=100, step=10, min_value=1)
            owner = st.text_input("Owner username", value="developer")
            if st.form_submit_button("🌱 Issue", width="stretch"):
                result = make_request("POST", "/credits", {
                    "project_id": project_id,
                    "vintage": vintage,
                    "quantity": int(quantity),
                    "owner": owner,
                    "user_id": acting_user,
                })
                if result:
                    st.success(f"✅ Issued {result.get('serial_number')}")
                    st.rerun()

    with col2:
        st.subheader("♻️ Retire or Transfer")
        available = {c["serial_number"]: c["id"] for c in credits if c.get("status") == "available"}
        with st.form("credit_action_form", border=True):
            serial = st.selectbox("Credit batch", list(available))
            action = st.radio("Action", ["retire", "transfer"], horizontal=True)
            new_owner = st.text_input("New owner (transfer only)")
            if st.form_submit_button("Apply", width="stretch") and serial:
                credit_id = available[serial]
                if action == "retire":
                    result = make_request("POST", f"/credits/{credit_id}/retire", {"user_id": acting_user})
                else:
                    result = make_request("POST", f"/credits/{credit_id}/transfer", {
                        "new_owner": new_owner,
                        "user_id": acting_user,
                    })
                if result:
                    st.success(f"✅ {serial} is now {result.get('status')}")
                    st.rerun()

# ============ HEALTH TAB ============
with tab5:
    st.header("API Health & Ledger")

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("🏥 API Information")
        health = make_request("GET", "/health")
        if health:
            st.json(health)

    with col2:
        st.subheader("⛓️ Recent Ledger Records")
        records = make_request("GET", "/ledger/records", params={"limit": 10})
        if records:
            df = pd.DataFrame([
                {
                    "Tx Hash": r.get("tx_hash", "")[:18] + "…",
                    "Entity": f"{r.get('entity_type')} {r.get('entity_id')}",
                    "Action": r.get("action"),
                    "Network": r.get("network"),
                }
                for r in records
            ])
            st.dataframe(df, width="stretch", hide_index=True)
        else:
            st.info("No ledger records")

# Footer
st.divider()
st.markdown(
    f"**Carbon Credit Registry** | API: {st.session_state.api_url} | "
    f"Last updated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
)
