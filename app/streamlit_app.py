"""Streamlit interface for Commissioner."""

from __future__ import annotations

import base64
from dataclasses import replace
from datetime import date, datetime
from zoneinfo import ZoneInfo

import streamlit as st

from commissioner.bets.types import BetPatch, BetRecord, BetResult
from commissioner.config import configure_logging, get_settings
from commissioner.extraction.vision_client import ExtractionError
from commissioner.scheduling.policy import compute_send_time
from commissioner.scheduling.timeparse import format_instant, local_to_instant, resolve_match_time
from commissioner.session import AuthError, SessionController
from commissioner.stats.performance import league_frame
from commissioner.storage.database import init_db
from commissioner.storage.documents import DocumentStore

settings = get_settings()
configure_logging()
init_db()

st.set_page_config(page_title="Commissioner", layout="wide", page_icon="📢")


@st.cache_resource(show_spinner=False)
def get_controller() -> SessionController:
    controller = SessionController(DocumentStore())
    controller.restore()
    return controller


controller = get_controller()


def render_login() -> None:
    st.title("📢 Commissioner")
    mode = st.radio("Account", ["Login", "Register"], horizontal=True)
    with st.form("auth_form"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Login" if mode == "Login" else "Create Account")
    if submitted:
        try:
            if mode == "Login":
                controller.login(username, password)
            else:
                controller.register(username, password)
        except AuthError as exc:
            st.error(str(exc))
        else:
            st.rerun()


def render_settings() -> None:
    context = controller.require_context()
    current = context.settings
    with st.expander("Settings", expanded=False):
        with st.form("settings_form"):
            bot_name = st.text_input("Bot name", value=current.bot_name)
            mention = st.text_input("Mention", value=current.mention, placeholder="<@&12345678>")
            timezone = st.text_input("Slate timezone", value=current.timezone)
            default_odds = st.text_input("Default odds", value=current.default_odds)
            lead_time = st.number_input("Post minutes before start", value=current.lead_time_minutes, min_value=0)
            webhook_url = st.text_input("Webhook URL", value=current.webhook_url, type="password")
            recap_url = st.text_input(
                "Recap webhook URL",
                value=current.recap_webhook_url,
                type="password",
                placeholder="Leave empty to use main webhook",
            )
            avatar = st.text_input("Bot avatar URL", value=current.bot_avatar_url)
            saved = st.form_submit_button("Save Settings")
        if saved:
            try:
                controller.update_settings(
                    bot_name=bot_name,
                    mention=mention,
                    timezone=timezone,
                    default_odds=default_odds,
                    lead_time_minutes=int(lead_time),
                    webhook_url=webhook_url,
                    recap_webhook_url=recap_url,
                    bot_avatar_url=avatar,
                )
            except ValueError as exc:
                st.error(f"Settings not saved: {exc}")
            else:
                st.success("Settings saved.")


def render_bet(bet: BetRecord, slate_date: date) -> None:
    context = controller.require_context()
    store = context.store
    tz = context.settings.timezone
    send_time = compute_send_time(bet, context.settings)
    with st.container(border=True):
        head = st.columns([0.5, 0.25, 0.25])
        head[0].markdown(f"**{bet.matchup}**  \n{bet.league} · {bet.bet_type} · {bet.units:g}u ({bet.odds or context.settings.default_odds})")
        head[1].caption("Posted" if bet.posted else f"Starts at {bet.display_time}")
        head[2].caption(f"Send: {format_instant(send_time, tz) if send_time else 'Not Scheduled'}")

        actions = st.columns(4)
        if not bet.posted:
            auto = actions[0].toggle("Auto", value=bet.auto_post_enabled, key=f"auto-{bet.id}")
            if auto != bet.auto_post_enabled:
                store.set_auto_post(bet.id, auto)
                st.rerun()
        if actions[1].button("Post now", key=f"post-{bet.id}", disabled=bet.posted):
            outcome = controller.post_now(bet.id)
            if outcome.ok:
                st.rerun()
            st.error(f"Failed to send: {outcome.reason}")
        if actions[2].button("Delete", key=f"delete-{bet.id}"):
            store.delete(bet.id)
            st.rerun()

        with st.expander("Edit", expanded=False):
            with st.form(f"edit-{bet.id}"):
                league = st.text_input("League", value=bet.league)
                player_a = st.text_input("Player A", value=bet.player_a)
                player_b = st.text_input("Player B", value=bet.player_b)
                display_time = st.text_input("Time", value=bet.display_time)
                bet_type = st.text_input("Type", value=bet.bet_type)
                units = st.number_input("Units", value=float(bet.units), min_value=0.01, step=0.5)
                odds = st.text_input("Odds", value=bet.odds or "")
                notes = st.text_area("Notes", value=bet.notes or "")
                override_on = st.checkbox("Pin send time", value=bet.schedule_override is not None)
                pinned = datetime.fromtimestamp((send_time or bet.created_at) / 1000, tz=ZoneInfo(tz)).replace(tzinfo=None)
                override_date = st.date_input("Send date", value=pinned.date())
                override_time = st.time_input("Send time", value=pinned.time())
                if st.form_submit_button("Save"):
                    patch = BetPatch(
                        league=league,
                        player_a=player_a,
                        player_b=player_b,
                        display_time=display_time,
                        bet_type=bet_type,
                        units=units,
                        odds=odds or None,
                        notes=notes or None,
                    )
                    if display_time != bet.display_time:
                        patch = replace(patch, match_instant=resolve_match_time(display_time, slate_date.isoformat(), tz))
                    store.update(bet.id, patch)
                    if override_on:
                        naive = datetime.combine(override_date, override_time)
                        store.set_override(bet.id, local_to_instant(naive, tz))
                    elif bet.schedule_override is not None:
                        store.set_override(bet.id, None)
                    st.rerun()

        if bet.posted:
            grades = st.columns(4)
            for col, result in zip(grades, (BetResult.WIN, BetResult.LOSS, BetResult.PUSH, BetResult.PENDING)):
                label = f"✔ {result.value}" if bet.result is result else result.value
                if col.button(label, key=f"grade-{result.value}-{bet.id}"):
                    store.grade(bet.id, result)
                    st.rerun()


def render_queue(slate_date: date) -> None:
    context = controller.require_context()
    uploaded = st.file_uploader("Upload slate screenshot", type=["png", "jpg", "jpeg", "webp"])
    if uploaded is not None and st.button("Analyze slate", use_container_width=True):
        encoded = base64.b64encode(uploaded.getvalue()).decode("ascii")
        with st.spinner("Reading slate..."):
            try:
                added = controller.upload_slate(encoded, slate_date.isoformat(), uploaded.type or "image/png")
            except (ExtractionError, RuntimeError) as exc:
                st.session_state["banner"] = f"Failed to analyze image. Please try again. ({exc})"
            else:
                st.session_state.pop("banner", None)
                st.success(f"Added {len(added)} bet(s).")

    cols = st.columns(3)
    if cols[0].button("Add manual bet", use_container_width=True):
        controller.add_manual_bet(slate_date.isoformat())
        st.rerun()
    if cols[1].button(
        f"Schedule all ({context.settings.lead_time_minutes} min before)",
        use_container_width=True,
    ):
        armed = controller.schedule_all()
        st.toast(f"Scheduled {armed} bet(s).")
    if cols[2].button("Clear all", use_container_width=True):
        st.session_state["confirm_clear"] = True
    if st.session_state.get("confirm_clear"):
        st.warning("Clear all history? This cannot be undone.")
        confirm = st.columns(2)
        if confirm[0].button("Yes, clear"):
            context.store.clear()
            st.session_state["confirm_clear"] = False
            st.rerun()
        if confirm[1].button("Cancel"):
            st.session_state["confirm_clear"] = False
            st.rerun()

    queue = context.store.queue()
    if not queue:
        st.info("Queue is empty. Upload a slate or add a manual bet.")
    for bet in queue:
        render_bet(bet, slate_date)


def render_history(slate_date: date) -> None:
    history = controller.require_context().store.history()
    if not history:
        st.info("No posted bets yet.")
    for bet in history:
        render_bet(bet, slate_date)


def render_stats() -> None:
    context = controller.require_context()
    summary = controller.summary()
    cols = st.columns(4)
    cols[0].metric("Record", summary.record)
    cols[1].metric("Net units", summary.formatted_net_units())
    cols[2].metric("ROI", f"{summary.roi:.1f}%")
    cols[3].metric("Graded", summary.graded)

    df = league_frame(context.store.list(), context.settings.default_odds)
    if df.empty:
        st.caption("No finished bets to chart.")
    else:
        st.bar_chart(df.set_index("league")["net_units"], height=250, use_container_width=True)
        st.dataframe(df, use_container_width=True)

    st.subheader("Recap")
    recap_cols = st.columns([0.3, 0.3, 0.4])
    recap_time = recap_cols[0].time_input("Send at", value=None)
    use_recap_hook = recap_cols[1].checkbox("Use recap webhook")
    if recap_cols[2].button("Send recap now"):
        outcome = controller.send_recap(use_recap_webhook=use_recap_hook)
        if outcome.ok:
            st.success("Recap sent successfully!")
        else:
            st.error(f"Failed to send recap: {outcome.reason}")
    if context.recap and context.recap.armed:
        st.caption(f"Recap scheduled for {context.recap.at.strftime('%H:%M')}.")
        if st.button("Cancel scheduled recap"):
            controller.cancel_recap()
            st.rerun()
    elif recap_time is not None and st.button("Schedule recap"):
        controller.schedule_recap(recap_time.strftime("%H:%M"), use_recap_webhook=use_recap_hook)
        st.rerun()


# ----- Page Layout ------------------------------------------------------------
if controller.context is None:
    render_login()
    st.stop()

with st.sidebar:
    st.caption(f"Logged in as **{controller.require_context().user_id}**")
    slate_date = st.date_input("Slate date", value=date.today())
    if st.button("Logout"):
        controller.logout()
        st.rerun()

st.title("📢 Commissioner")
render_settings()
if banner := st.session_state.get("banner"):
    cols = st.columns([0.9, 0.1])
    cols[0].error(banner)
    if cols[1].button("✕"):
        st.session_state.pop("banner", None)
        st.rerun()

queue_tab, history_tab, stats_tab = st.tabs(["Queue", "History", "Stats"])
with queue_tab:
    render_queue(slate_date)
with history_tab:
    render_history(slate_date)
with stats_tab:
    render_stats()
