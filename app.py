"""Streamlit swipe UI for JobSwipe."""
from __future__ import annotations

import html
import sys
from pathlib import Path

import streamlit as st

ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(ROOT))

from jobswipe.client import ApiClient
from jobswipe.config import api_url, get_env
from jobswipe.dispatch import Dispatcher
from jobswipe.feed import FeedCursor, FeedView
from jobswipe.gesture import GestureInterpreter, GestureState, default_thresholds
from jobswipe.log import get_logger
from jobswipe.models import Candidate, Direction, Filters

log = get_logger(__name__)

# ── Constants ────────────────────────────────────────────────────────────

EMPLOYMENT_OPTIONS: dict[str, str] = {
    "all": "Any",
    "full": "Full time",
    "part": "Part time",
    "project": "Project",
    "probation": "Internship",
}
SCHEDULE_OPTIONS: dict[str, str] = {
    "all": "Any",
    "fullDay": "Office",
    "remote": "Remote",
    "flexible": "Flexible",
    "shift": "Shifts",
}
EXPERIENCE_OPTIONS: dict[str, str] = {
    "all": "Any",
    "noExperience": "No experience",
    "between1And3": "1–3 years",
    "between3And6": "3–6 years",
    "moreThan6": "6+ years",
}

_CARD_CSS = """
<style>
.job-card {
    padding: 1.25rem 1.5rem;
    background: rgba(255,255,255,0.75);
    border: 1px solid rgba(74,144,217,0.25);
    border-radius: 16px;
    box-shadow: 0 4px 16px rgba(0,0,0,0.06);
}
.job-card h3 { margin-bottom: 0.25rem; color: #1a1a2e; }
.job-tag {
    display: inline-block; margin: 0 0.3rem 0.3rem 0; padding: 0.1rem 0.6rem;
    border-radius: 999px; background: rgba(74,144,217,0.12); font-size: 0.85rem;
}
</style>
"""

# ── Session helpers ──────────────────────────────────────────────────────


def _settings() -> dict:
    if "settings" not in st.session_state:
        st.session_state["settings"] = {
            "api_url": api_url(),
            "profile_id": get_env("JOBSWIPE_PROFILE_ID"),
            "profile_text": "",
            "demo": True,
        }
    return st.session_state["settings"]


def _client() -> ApiClient:
    url = _settings()["api_url"]
    client = st.session_state.get("client")
    if client is None or client.base_url != url.rstrip("/"):
        client = ApiClient(url)
        st.session_state["client"] = client
    return client


def _cursor() -> FeedCursor:
    cursor = st.session_state.get("cursor")
    if cursor is None:
        s = _settings()
        client = _client()
        cursor = FeedCursor(
            client,
            client,
            dispatcher=st.session_state.setdefault("dispatcher", Dispatcher(max_workers=4, name="ui")),
            profile_id=s["profile_id"],
            profile_text=s["profile_text"],
            demo=s["demo"],
        )
        cursor.start()
        st.session_state["cursor"] = cursor
    return cursor


def _gesture(cursor: FeedCursor, top: Candidate) -> GestureInterpreter:
    """The interpreter for the visible card, rebound when the card changes."""
    gesture = st.session_state.get("gesture")
    if gesture is None:
        distance, velocity = default_thresholds()
        gesture = GestureInterpreter(
            top.id,
            lambda cid, direction: cursor.decide(direction, cid),
            distance_threshold=distance,
            velocity_threshold=velocity,
        )
        st.session_state["gesture"] = gesture
    elif gesture.candidate_id != top.id or gesture.state is GestureState.DECIDED:
        gesture.replace(top.id)
    return gesture


def _drop_feed() -> None:
    for key in ("cursor", "gesture"):
        st.session_state.pop(key, None)


# ── Page: Swipe ──────────────────────────────────────────────────────────


def _filter_form(cursor: FeedCursor) -> None:
    current = cursor.state.filters
    with st.expander("Filters", expanded=False):
        with st.form("filters"):
            keyword = st.text_input("Keyword", value=current.keyword)
            area = st.text_input("Area id", value=current.area, help="hh.ru area id, 1 = Moscow")
            c1, c2, c3 = st.columns(3)
            with c1:
                employment = st.selectbox(
                    "Employment", list(EMPLOYMENT_OPTIONS),
                    index=list(EMPLOYMENT_OPTIONS).index(current.employment or "all"),
                    format_func=EMPLOYMENT_OPTIONS.get,
                )
            with c2:
                schedule = st.selectbox(
                    "Schedule", list(SCHEDULE_OPTIONS),
                    index=list(SCHEDULE_OPTIONS).index(current.schedule or "all"),
                    format_func=SCHEDULE_OPTIONS.get,
                )
            with c3:
                experience = st.selectbox(
                    "Experience", list(EXPERIENCE_OPTIONS),
                    index=list(EXPERIENCE_OPTIONS).index(current.experience or "all"),
                    format_func=EXPERIENCE_OPTIONS.get,
                )
            if st.form_submit_button("Apply filters", use_container_width=True):
                filters = Filters(
                    keyword=keyword.strip(),
                    area=area.strip(),
                    employment="" if employment == "all" else employment,
                    schedule="" if schedule == "all" else schedule,
                    experience="" if experience == "all" else experience,
                )
                if filters != current:
                    cursor.apply_filters(filters)
                    st.session_state.pop("gesture", None)
                    st.rerun()


def _render_card(c: Candidate) -> None:
    esc = html.escape
    tags = "".join(f'<span class="job-tag">{esc(t)}</span>' for t in c.tags)
    meta = esc(" · ".join(x for x in (c.company, c.location, c.employment_type) if x))
    st.markdown(
        f'<div class="job-card"><h3>{esc(c.title)}</h3>'
        f"<p><b>{meta}</b></p>"
        f"<p>{esc(c.salary_text or 'Salary not specified')}</p>"
        f"<p>{esc(c.description)}</p>{tags}</div>",
        unsafe_allow_html=True,
    )
    if c.url:
        st.markdown(f"[Open posting]({c.url})")


def page_swipe() -> None:
    st.header("Swipe")
    cursor = _cursor()
    cursor.poll()
    _filter_form(cursor)

    if cursor.last_error:
        st.warning(f"Could not load jobs: {cursor.last_error}")

    view = cursor.view
    if view is FeedView.LOADING:
        with st.spinner("Loading jobs…"):
            cursor.wait(timeout=20)
        st.rerun()

    if view is FeedView.LOAD_MORE:
        st.info("You have seen every loaded job.")
        if st.button("Load more", type="primary", use_container_width=True):
            cursor.load_more()
            st.rerun()
        return

    if view is FeedView.EXHAUSTED:
        st.success("Nothing left for these filters.")
        c1, c2 = st.columns(2)
        if c1.button("Start over", use_container_width=True):
            cursor.reset()
            st.session_state.pop("gesture", None)
            st.rerun()
        if cursor.can_undo and c2.button("Undo last", use_container_width=True):
            cursor.undo()
            st.rerun()
        return

    top = cursor.next()
    if top is None:
        return
    gesture = _gesture(cursor, top)
    _render_card(top)

    c1, c2, c3 = st.columns(3)
    if c1.button("✖ Reject", use_container_width=True):
        gesture.force_decision(Direction.REJECT)
        st.rerun()
    if c2.button("↶ Undo", use_container_width=True, disabled=not cursor.can_undo):
        cursor.undo()
        st.rerun()
    if c3.button("✔ Accept", type="primary", use_container_width=True):
        gesture.force_decision(Direction.ACCEPT)
        st.rerun()

    s = cursor.state
    st.caption(f"{len(s.candidates) - s.position} left in this batch · {len(s.decisions)} decided")


# ── Page: Applications ───────────────────────────────────────────────────


def page_applications() -> None:
    st.header("Applications")
    try:
        rows = _client().list_applications(_settings()["profile_id"])
    except Exception as exc:
        st.error(f"Could not load applications: {exc}")
        return

    if not rows:
        st.info("No applications yet. Accept a job to apply.")
        return

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total", len(rows))
    c2.metric("Sent", sum(1 for r in rows if r.get("status") == "success"))
    c3.metric("Demo", sum(1 for r in rows if r.get("status") == "demo"))
    c4.metric("Failed", sum(1 for r in rows if r.get("status") == "failed"))

    import pandas as pd

    df = pd.DataFrame(rows)
    display_cols = ["title", "company", "status", "errorReason", "createdAt", "coverLetter"]
    display_cols = [c for c in display_cols if c in df.columns]
    st.dataframe(
        df[display_cols],
        use_container_width=True,
        column_config={
            "errorReason": st.column_config.TextColumn("Reason"),
            "createdAt": st.column_config.TextColumn("Created"),
            "coverLetter": st.column_config.TextColumn("Cover letter", width="large"),
        },
        hide_index=True,
    )

    editable = [r for r in rows if r.get("status") != "pending" and r.get("coverLetter")]
    if editable:
        st.subheader("Edit a cover letter")
        labels = {r["id"]: f'{r.get("title") or r["candidateId"]} · {r.get("company") or ""}' for r in editable}
        by_id = {r["id"]: r for r in editable}
        app_id = st.selectbox("Application", list(labels), format_func=lambda i: labels[i])
        with st.form(f"letter-{app_id}"):
            text = st.text_area("Cover letter", value=by_id[app_id]["coverLetter"], height=260)
            if st.form_submit_button("Save letter"):
                try:
                    _client().update_cover_letter(app_id, text)
                    st.success("Cover letter saved.")
                except Exception as exc:
                    st.error(f"Could not save the letter: {exc}")

    if st.button("Refresh"):
        st.rerun()


# ── Page: Settings ───────────────────────────────────────────────────────


def page_settings() -> None:
    st.header("Settings")
    s = _settings()

    with st.form("settings"):
        url = st.text_input("API URL", value=s["api_url"])
        profile_id = st.text_input(
            "Profile id", value=s["profile_id"],
            help="Leave empty to browse anonymously; applications are then demo only.",
        )
        profile_text = st.text_area(
            "About you", value=s["profile_text"], height=200,
            help="Cover letters only use facts written here.",
        )
        demo = st.toggle("Demo mode (do not send applications)", value=s["demo"])
        if st.form_submit_button("Save", type="primary", use_container_width=True):
            s.update(
                api_url=url.strip() or api_url(),
                profile_id=profile_id.strip(),
                profile_text=profile_text,
                demo=demo,
            )
            _drop_feed()
            st.success("Saved. The feed will reload.")

    if s["profile_id"]:
        st.subheader("Resume")
        try:
            resumes = _client().list_resumes(s["profile_id"])
        except Exception as exc:
            st.warning(f"Could not load resumes from hh.ru: {exc}")
            return
        items = resumes.get("items") or []
        if not items:
            st.info("No resumes on this hh.ru account yet.")
            return
        titles = {r["id"]: r["title"] for r in items}
        ids = list(titles)
        selected = resumes.get("selectedId")
        with st.form("resume"):
            resume_id = st.selectbox(
                "Apply with",
                ids,
                index=ids.index(selected) if selected in titles else 0,
                format_func=lambda rid: titles[rid],
            )
            if st.form_submit_button("Use this resume"):
                try:
                    _client().select_resume(s["profile_id"], resume_id)
                    st.success("Resume selected.")
                except Exception as exc:
                    st.error(f"Could not select resume: {exc}")


# ── Main ─────────────────────────────────────────────────────────────────


def _wrap(page):
    def run() -> None:
        st.markdown(_CARD_CSS, unsafe_allow_html=True)
        page()

    run.__name__ = page.__name__
    return run


pages = [
    st.Page(_wrap(page_swipe), title="Swipe", icon="🃏", url_path="swipe", default=True),
    st.Page(_wrap(page_applications), title="Applications", icon="📋", url_path="applications"),
    st.Page(_wrap(page_settings), title="Settings", icon="⚙️", url_path="settings"),
]

nav = st.navigation(pages)
nav.run()
