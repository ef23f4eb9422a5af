"""Simple Streamlit dashboard to peek at running timer registries.

The app polls each demo's `/state` endpoint and renders the pending timers,
making it useful for watching intervals tick and clear during labs. Start a
few `run_demo` processes on different ports and list them below.
"""

import streamlit as st
import requests, time

st.set_page_config(page_title="Timer Labs Dashboard", layout="wide")
peers_text = st.text_input(
    "Demos (comma-separated name:url)",
    "d1:http://localhost:8000",
)
peers = dict(kv.split(":", 1) for kv in peers_text.split(","))
interval = st.slider("Refresh interval (sec)", 0.2, 2.0, 0.5)
board = st.empty()
while True:
    cols = board.container().columns(len(peers))
    for i, (name, url) in enumerate(sorted(peers.items())):
        with cols[i]:
            st.subheader(name)
            try:
                r = requests.get(url + "/state", timeout=0.3)
                state = r.json()
                st.metric("now (ms)", round(state["now"]))
                st.metric("pending", state["pending"])
                if state["timers"]:
                    st.table(state["timers"])
                else:
                    st.info("no pending timers")
            except Exception as e:
                st.error(str(e))
    time.sleep(interval)
