from __future__ import annotations

import glob
import json
import os
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import streamlit as st

EVENTS = ("user_message", "assistant_message", "agent_step", "phase_transition", "error", "info")


def get_logs_dir() -> str:
    # Same override the backend uses; default to backend/logs next to this file
    env_dir = os.getenv("NATUREUP_LOGS_DIR")
    if env_dir:
        return env_dir
    here = os.path.dirname(os.path.abspath(__file__))
    return os.path.join(here, "backend", "logs")


def list_session_files(logs_dir: str) -> List[str]:
    pattern = os.path.join(logs_dir, "session_*.jsonl")
    files = glob.glob(pattern)
    files.sort(key=lambda p: os.path.getmtime(p), reverse=True)
    return files


def read_jsonl(path: str) -> List[Dict[str, Any]]:
    records: List[Dict[str, Any]] = []
    try:
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError:
                    # A line may be half-written while the backend is appending.
                    continue
    except FileNotFoundError:
        return []
    return records


def format_ts(ts: Optional[str]) -> str:
    if not ts:
        return ""
    try:
        return datetime.fromisoformat(ts.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return ts


def phase_timeline(records: List[Dict[str, Any]]) -> List[Tuple[str, str, str]]:
    """(timestamp, from, to) for every phase change in a session log."""
    return [
        (rec.get("ts", ""), rec["payload"].get("from", ""), rec["payload"].get("to", ""))
        for rec in records
        if rec.get("event") == "phase_transition" and isinstance(rec.get("payload"), dict)
    ]


def event_counts(records: List[Dict[str, Any]]) -> Dict[str, int]:
    return dict(Counter(rec.get("event", "unknown") for rec in records))


def event_palette(event: str) -> str:
    return {
        "user_message": "#1f6feb",
        "assistant_message": "#3fb950",
        "agent_step": "#9e6ffe",
        "phase_transition": "#ffa657",
        "error": "#f85149",
        "info": "#8b949e",
    }.get(event, "#8b949e")


def render_event(rec: Dict[str, Any]) -> None:
    ts = rec.get("ts")
    ev = rec.get("event")
    payload = rec.get("payload", {})
    color = event_palette(ev)

    with st.container():
        st.markdown(f"<div style='color:{color};font-weight:600'>{ev}</div>", unsafe_allow_html=True)
        if ts:
            st.caption(format_ts(ts))

        if ev == "user_message":
            st.markdown(f"User: {payload.get('message','')}")
        elif ev == "assistant_message":
            st.markdown(f"NatureUP: {payload.get('message','')}")
        elif ev == "agent_step":
            name = payload.get("name", "agent")
            with st.expander(f"Step: {name}"):
                st.write("Input:")
                st.json(payload.get("input", {}), expanded=False)
                st.write("Output:")
                st.json(payload.get("output", {}), expanded=False)
        elif ev == "phase_transition":
            st.markdown(f"Phase: {payload.get('from')} → {payload.get('to')}")
        elif ev == "error":
            st.error(f"{payload.get('code')}: {payload.get('message')}")
        else:
            st.json(payload, expanded=False)


def main() -> None:
    st.set_page_config(page_title="NatureUP Logs", layout="wide")
    st.title("NatureUP – Session Logs")

    logs_dir = get_logs_dir()
    st.sidebar.header("Controls")
    st.sidebar.write(f"Logs dir: {logs_dir}")
    if st.sidebar.button("Refresh"):
        st.rerun()

    files = list_session_files(logs_dir)
    if not files:
        st.info("No session logs found yet. Start chatting with the backend to generate logs.")
        return

    file_labels = [os.path.basename(p) for p in files]
    choice = st.sidebar.selectbox("Session", options=list(range(len(files))), format_func=lambda i: file_labels[i], index=0)
    path = files[choice]

    st.sidebar.subheader("Event filters")
    filters = {ev: st.sidebar.checkbox(ev, value=ev != "info") for ev in EVENTS}

    st.subheader(os.path.basename(path))
    st.caption(f"Updated: {datetime.fromtimestamp(os.path.getmtime(path)).strftime('%Y-%m-%d %H:%M:%S')}")

    records = read_jsonl(path)
    if not records:
        st.warning("Log file is empty.")
        return

    counts = event_counts(records)
    cols = st.columns(len(EVENTS))
    for col, ev in zip(cols, EVENTS):
        col.metric(ev, counts.get(ev, 0))

    timeline = phase_timeline(records)
    if timeline:
        with st.expander("Phase timeline", expanded=True):
            for ts, src, dst in timeline:
                st.markdown(f"`{format_ts(ts)}` {src} → **{dst}**")

    for rec in records:
        if not filters.get(rec.get("event"), False):
            continue
        render_event(rec)
        st.divider()

    with open(path, "rb") as f:
        st.download_button("Download log file", data=f, file_name=os.path.basename(path), mime="text/plain")


if __name__ == "__main__":
    main()
