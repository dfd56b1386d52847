from streamlit_folium import st_folium
import folium
# frontend/streamlit_app.py
import streamlit as st
import requests
import pandas as pd
import pydeck as pdk
import os
from streamlit_autorefresh import st_autorefresh
from datetime import datetime, time as dtime

MAPBOX_TOKEN = os.getenv("MAPBOX_API_KEY")
if MAPBOX_TOKEN:
    pdk.settings.mapbox_api_key = MAPBOX_TOKEN

st.set_page_config(page_title="Drone Survey Management System", layout="wide")

DRONE_STATUSES = ["Idle", "In Mission", "Charging", "Maintenance"]
MISSION_STATUSES = ["Scheduled", "In Progress", "Completed", "Aborted"]

# -------------------------------
# Sidebar Navigation
# -------------------------------
st.sidebar.title("📊 Menu")
page = st.sidebar.radio(
    "Choose a Dashboard:",
    [
        "🛰 Mission Planner",
        "🚁 Fleet Visualization",
        "📡 Mission Monitoring",
        "📊 Survey Reporting & Analytics Portal"
    ]
)

API = st.sidebar.text_input("API base URL", value=os.getenv("MP_API_URL", "http://localhost:8000")).rstrip("/")


# -------------------------------
# API helpers
# -------------------------------
def call(method, endpoint, **kwargs):
    """Call the API and unwrap the {success, data} envelope. Returns (ok, data_or_error)."""
    try:
        r = requests.request(method, f"{API}/api/{endpoint}", timeout=10, **kwargs)
        body = r.json()
    except Exception as e:
        return False, f"Error calling {endpoint}: {e}"
    if body.get("success"):
        return True, body.get("data")
    return False, body.get("error", r.text)


def get_data(endpoint):
    ok, data = call("GET", endpoint)
    if not ok:
        st.error(data)
        return []
    return data


def show_result(ok, data, success_msg):
    if ok:
        st.success(success_msg)
        st.rerun()
    else:
        st.error(data)


def point(lat, lon):
    return {"type": "Point", "coordinates": [lon, lat]}


# -------------------------------
# 1️⃣ MISSION PLANNER DASHBOARD
# -------------------------------
if page == "🛰 Mission Planner":
    st.title("🛰 Drone Survey Management System")

    # ---------- DRONES ----------
    st.header("🛩️ Register Drones")
    drones = get_data("drones")
    if drones:
        for d in drones:
            st.write(f"**{d['drone_id']} - {d['model']}** | Battery: {d['battery_level']}% | Status: {d['status']}")
    else:
        st.info("No drones registered yet.")

    with st.form("add_drone"):
        cols = st.columns(3)
        drone_id = cols[0].text_input("Drone ID")
        model = cols[1].text_input("Model")
        battery = cols[2].number_input("Battery %", 0, 100, 100)
        lat_col, lon_col = st.columns(2)
        d_lat = lat_col.number_input("Base latitude", value=0.0, format="%.6f")
        d_lon = lon_col.number_input("Base longitude", value=0.0, format="%.6f")
        if st.form_submit_button("Add Drone"):
            ok, data = call("POST", "drones", json={
                "drone_id": drone_id,
                "model": model,
                "battery_level": battery,
                "location": point(d_lat, d_lon),
            })
            show_result(ok, data, "Drone added")

    st.divider()

    # ---------- MISSIONS ----------
    st.header("🎯 Missions")
    missions = get_data("missions")
    if missions:
        for m in missions:
            cols = st.columns([4, 1])
            drone = m.get("assigned_drone")
            drone_label = drone["drone_id"] if drone else "unassigned"
            cols[0].write(
                f"**{m['id']} - {m['name']}** | {m['status']} | {m['location'].get('address')} | "
                f"{m['pattern_type']} / {m['sensor_type']} @ {m['flight_altitude']}m | Drone: {drone_label}"
            )
            if cols[1].button("🗑 Remove", key=f"del_mission_{m['id']}"):
                ok, data = call("DELETE", f"missions/{m['id']}")
                show_result(ok, data, "Mission deleted")
    else:
        st.info("No missions planned yet.")

    st.divider()

    # Interactive flight path builder
    st.subheader("🗺️ Build Flight Path via Interactive Map")
    st.caption("Click on the map to add points to the flight path. The first point is used as the mission home.")

    if "path_points" not in st.session_state:
        st.session_state.path_points = []

    center = st.session_state.path_points[0] if st.session_state.path_points else (20.5937, 78.9629)
    m = folium.Map(location=list(center), zoom_start=5)
    for lat, lon in st.session_state.path_points:
        folium.Marker([lat, lon], icon=folium.Icon(color="blue", icon="info-sign")).add_to(m)
    if len(st.session_state.path_points) > 1:
        folium.PolyLine(st.session_state.path_points, color="blue").add_to(m)

    clicked = st_folium(m, height=400, width=700)
    if clicked and clicked.get("last_clicked"):
        latlon = (clicked["last_clicked"]["lat"], clicked["last_clicked"]["lng"])
        if latlon not in st.session_state.path_points:
            st.session_state.path_points.append(latlon)
            st.rerun()

    st.write(f"Flight path points: {len(st.session_state.path_points)}")
    if st.button("🧹 Clear Flight Path"):
        st.session_state.path_points = []
        st.rerun()

    with st.form("add_mission"):
        name = st.text_input("Mission Name")
        address = st.text_input("Address")
        cols = st.columns(2)
        start_date = cols[0].date_input("Start date")
        start_time = cols[1].time_input("Start time", value=dtime(9, 0))
        cols = st.columns(4)
        recurrence = cols[0].selectbox("Recurrence", ["Once", "Daily", "Weekly", "Monthly"])
        pattern = cols[1].selectbox("Pattern", ["Grid", "Crosshatch", "Perimeter"])
        sensor = cols[2].selectbox("Sensor", ["RGB", "Thermal", "Multispectral", "LiDAR"])
        altitude = cols[3].number_input("Altitude (m)", 1.0, 1000.0, 100.0)

        available = {f"{d['drone_id']} ({d['model']})": d["id"] for d in drones if d["status"] in ("Idle", "Charging")}
        drone_choice = st.selectbox("Assign Drone", ["(none)"] + list(available.keys()))

        if st.form_submit_button("Create Mission"):
            if not st.session_state.path_points:
                st.warning("Please click on the map to add flight path points.")
            else:
                home_lat, home_lon = st.session_state.path_points[0]
                home = point(home_lat, home_lon)
                home["address"] = address
                payload = {
                    "name": name,
                    "location": home,
                    "start_time": datetime.combine(start_date, start_time).isoformat(),
                    "recurrence_type": recurrence,
                    "flight_path": [point(lat, lon) for lat, lon in st.session_state.path_points],
                    "flight_altitude": altitude,
                    "pattern_type": pattern,
                    "sensor_type": sensor,
                }
                if drone_choice in available:
                    payload["assigned_drone_id"] = available[drone_choice]
                ok, data = call("POST", "missions", json=payload)
                if ok:
                    st.session_state.path_points = []
                show_result(ok, data, "Mission created")

    # ---------- ASSIGNMENTS ----------
    st.header("🔗 Reassign Drones")
    if not missions or not drones:
        st.warning("Please make sure both drones and missions exist before assigning.")
    else:
        mission_options = {f"{m['name']} (ID: {m['id']})": m["id"] for m in missions}
        drone_options = {"(unassign)": None}
        drone_options.update({f"{d['drone_id']} [{d['status']}]": d["id"] for d in drones})
        sel_mission = st.selectbox("Select Mission", list(mission_options.keys()))
        sel_drone = st.selectbox("Select Drone", list(drone_options.keys()))
        if st.button("✅ Apply Assignment"):
            ok, data = call("PUT", f"missions/{mission_options[sel_mission]}",
                            json={"assigned_drone_id": drone_options[sel_drone]})
            show_result(ok, data, f"Updated **{sel_mission}**")


# -------------------------------
# 2️⃣ FLEET VISUALIZATION DASHBOARD
# -------------------------------
elif page == "🚁 Fleet Visualization":
    st.title("🚁 Fleet Visualization & Management Dashboard")

    refresh_interval = st.sidebar.slider("Auto-refresh (seconds)", 2, 30, 5)
    st_autorefresh(interval=refresh_interval * 1000, key="fleet_refresh")

    drones = get_data("drones")
    if not drones:
        st.warning("No drones available in inventory.")
    else:
        df = pd.DataFrame([
            {
                "ID": d["id"],
                "Drone ID": d["drone_id"],
                "Model": d["model"],
                "Status": d["status"],
                "Battery (%)": d["battery_level"],
                "Mission": d["assigned_mission"]["name"] if d.get("assigned_mission") else "",
            }
            for d in drones
        ])

        def color_battery(val):
            if val >= 70:
                color = 'lightgreen'
            elif val >= 40:
                color = 'khaki'
            else:
                color = 'salmon'
            return f'background-color: {color}'

        def color_status(val):
            color = 'lightgreen' if val == 'Idle' else ('khaki' if val == 'Charging' else 'lightcoral')
            return f'background-color: {color}'

        styled_df = df.style.map(color_battery, subset=["Battery (%)"]).map(color_status, subset=["Status"])

        st.subheader("📦 Drone Inventory")
        st.dataframe(styled_df, use_container_width=True)

        col1, col2, col3, col4 = st.columns(4)
        col1.metric("Total Drones", len(df))
        col2.metric("Idle", int((df["Status"] == "Idle").sum()))
        col3.metric("In Mission", int((df["Status"] == "In Mission").sum()))
        col4.metric("Avg Battery", f"{df['Battery (%)'].mean():.0f}%")
        st.caption(f"🔄 Auto-refresh every {refresh_interval} sec")

        st.subheader("🔧 Change Drone Status")
        drone_map = {f"{d['drone_id']} [{d['status']}]": d for d in drones}
        sel = st.selectbox("Drone", list(drone_map.keys()))
        new_status = st.selectbox("New status", DRONE_STATUSES)
        payload = {"status": new_status}
        if new_status == "In Mission":
            missions = get_data("missions")
            open_missions = {f"{m['name']} (ID: {m['id']})": m["id"] for m in missions
                             if m["status"] in ("Scheduled", "In Progress")}
            if open_missions:
                payload["assigned_mission_id"] = open_missions[st.selectbox("Mission", list(open_missions.keys()))]
            else:
                st.info("No open missions to fly.")
        if st.button("Apply Status"):
            ok, data = call("PUT", f"drones/{drone_map[sel]['id']}/status", json=payload)
            show_result(ok, data, f"Drone {drone_map[sel]['drone_id']} is now {new_status}")


# -----------------------------------------------------------
# 3️⃣  REAL-TIME MISSION MONITORING DASHBOARD
# -----------------------------------------------------------
elif page == "📡 Mission Monitoring":
    st.title("🛰 Multi-Drone Mission Control Center")

    refresh_interval = st.sidebar.slider("Telemetry refresh (seconds)", 1, 20, 3)
    st_autorefresh(interval=refresh_interval * 1000, key="mission_refresh")

    colors = [
        [0, 100, 255],   # blue
        [0, 200, 100],   # green
        [255, 50, 50],   # red
        [255, 150, 0],   # orange
        [150, 0, 255],   # purple
    ]

    missions = get_data("missions")
    active = [m for m in missions if m["status"] == "In Progress"]

    st.subheader("🚁 Active Missions")
    if not active:
        st.info("No missions in progress.")

    snapshots = {}
    missions_per_row = 3
    for i in range(0, len(active), missions_per_row):
        row = active[i:i + missions_per_row]
        cols = st.columns(len(row))
        for idx, m in enumerate(row):
            with cols[idx]:
                ok, snap = call("GET", f"monitor/{m['id']}")
                if not ok:
                    st.error(snap)
                    continue
                snapshots[m["id"]] = snap
                drone = snap.get("drone_info") or {}
                st.markdown(f"### 🛩 {snap['name']}")
                st.caption(f"Drone: {drone.get('drone_id', '-')} | ETA: {snap['estimated_time_remaining']}")
                st.metric("Battery", f"{snap['battery_level']}%" if snap["battery_level"] is not None else "-")
                st.progress(int(snap["progress"]))
                t = snap["telemetry"]
                st.caption(f"Alt {t['altitude']:.1f}m | Speed {t['speed']} m/s | Heading {t['heading']}°")

                btns = st.columns(2)
                if btns[0].button("✅ Complete", key=f"complete_{m['id']}"):
                    ok, data = call("POST", f"monitor/{m['id']}/update", json={"status": "Completed"})
                    show_result(ok, data, "Mission completed")
                if btns[1].button("🛑 Abort", key=f"abort_{m['id']}"):
                    ok, data = call("POST", f"monitor/{m['id']}/update", json={"status": "Aborted"})
                    show_result(ok, data, "Mission aborted")

    st.divider()

    st.subheader("🌍 Flight Paths (3D View)")
    if active:
        layers = []
        for idx, m in enumerate(active):
            color = colors[idx % len(colors)]
            path = [p["coordinates"] for p in m["flight_path"]]
            layers.append(pdk.Layer(
                "PathLayer",
                data=pd.DataFrame([{"path": path}]),
                get_path="path",
                get_color=color,
                width_scale=10,
                width_min_pixels=3,
                get_width=5,
                opacity=0.7,
            ))
            snap = snapshots.get(m["id"])
            if snap:
                lon, lat = snap["current_location"]["coordinates"]
                layers.append(pdk.Layer(
                    "ScatterplotLayer",
                    data=pd.DataFrame([{"lon": lon, "lat": lat}]),
                    get_position=["lon", "lat"],
                    get_fill_color=color,
                    get_radius=30,
                ))

        first = active[0]["flight_path"][0]["coordinates"]
        st.pydeck_chart(pdk.Deck(
            layers=layers,
            initial_view_state=pdk.ViewState(longitude=first[0], latitude=first[1], zoom=14, pitch=45),
        ))
    else:
        st.info("Flight paths appear here once a mission is in progress.")


# -----------------------------------------------------------
# 4️⃣  SURVEY REPORTING & ANALYTICS PORTAL
# -----------------------------------------------------------
elif page == "📊 Survey Reporting & Analytics Portal":
    st.title("📊 Survey Reporting & Analytics Portal")

    ok, stats = call("GET", "dashboard/stats")
    if ok:
        cols = st.columns(4)
        cols[0].metric("Missions Today", stats["today_missions"])
        cols[1].metric("This Month", stats["month_missions"])
        cols[2].metric("Total Missions", stats["total_missions"])
        cols[3].metric("Total Drones", stats["total_drones"])
        cols = st.columns(4)
        cols[0].metric("Completed", stats["completed_missions"])
        cols[1].metric("Ongoing", stats["ongoing_missions"])
        cols[2].metric("Scheduled", stats["scheduled_missions"])
        cols[3].metric("Aborted", stats["aborted_missions"])
    else:
        st.error(stats)

    activity = get_data("dashboard/monthly-activity")
    if activity:
        st.subheader("📅 Monthly Activity")
        st.bar_chart(pd.DataFrame(activity).set_index("month"))

    recent = get_data("dashboard/recent")
    if recent:
        st.subheader("🕑 Recent Missions")
        st.dataframe(pd.DataFrame(recent), use_container_width=True)

    st.divider()

    st.subheader("📝 Generate Reports")
    missions = get_data("missions")
    completed = {f"{m['name']} (ID: {m['id']})": m["id"] for m in missions if m["status"] == "Completed"}
    if completed:
        sel = st.selectbox("Completed mission", list(completed.keys()))
        if st.button("📝 Generate Report"):
            ok, data = call("POST", f"reports/generate/{completed[sel]}")
            show_result(ok, data, "Report generated")
    else:
        st.info("No completed missions yet.")

    reports = get_data("reports")
    if reports:
        st.subheader("📄 Survey Reports")
        df = pd.DataFrame(reports)[[
            "id", "mission_name", "location", "drone_id", "duration", "distance",
            "data_points_collected", "survey_coverage_percentage", "status",
        ]]
        st.dataframe(df, use_container_width=True)
        st.metric("Avg Coverage", f"{df['survey_coverage_percentage'].mean():.1f}%")

        report_map = {f"Report {r['id']} - {r['mission_name']}": r["id"] for r in reports}
        sel_report = st.selectbox("Download", list(report_map.keys()))
        if st.button("⬇️ Download"):
            ok, data = call("GET", f"reports/{report_map[sel_report]}/download")
            if ok:
                st.success(f"{data['format']} ({data['size']}) ready at {data['download_url']}")
            else:
                st.error(data)
