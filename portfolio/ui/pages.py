"""
Page renderers for the Streamlit admin console.
"""

from __future__ import annotations

import time
from datetime import date

import streamlit as st

from portfolio.client import (
    AuthContext,
    ImportWizard,
    LocalFile,
    PortfolioClient,
    PortfolioClientError,
    Step,
    activity_payload,
    save_project,
)
from portfolio.config import CATEGORIES, CATEGORY_ICONS, get_settings
from portfolio.domain import format_date_range
from portfolio.ui.session import get_wizard, sign_out


def _flush_notices(wizard: ImportWizard) -> None:
    for notice in wizard.pop_notices():
        if notice.level == "error":
            st.error(notice.message)
        else:
            st.success(notice.message)


# =============================================================================
# Sign-in
# =============================================================================


def render_sign_in(auth: AuthContext) -> None:
    st.title("Admin Hub")
    st.caption("Sign in with an allow-listed email, or use the access code.")

    tab_password, tab_code = st.tabs(["Email", "Access code"])
    with tab_password:
        with st.form("sign_in_form"):
            email = st.text_input("Email", placeholder="you@example.com")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign in", type="primary", use_container_width=True)
        if submitted:
            result = auth.sign_in(email, password)
            if result.success:
                st.toast(result.message)
                st.rerun()
            st.error(result.message)

    with tab_code:
        with st.form("access_code_form"):
            code = st.text_input("Access code", type="password")
            submitted = st.form_submit_button("Enter", use_container_width=True)
        if submitted:
            result = auth.sign_in_with_code(code)
            if result.success:
                st.toast(result.message)
                st.rerun()
            st.error(result.message)


# =============================================================================
# Dashboard
# =============================================================================


def _run(action, success: str | None = None) -> None:
    try:
        action()
    except PortfolioClientError as exc:
        st.error(exc.message)
        return
    if success:
        st.toast(success)
    st.rerun()


def _iso_date(value: str | None) -> date | None:
    try:
        return date.fromisoformat(value) if value else None
    except ValueError:
        return None


def render_project_form(client: PortfolioClient, project: dict | None = None) -> None:
    """Create form, or edit form when ``project`` is given."""
    project = project or {}
    project_id = project.get("id")
    key = project_id or "new"
    settings = get_settings()

    with st.form(f"project_form_{key}", clear_on_submit=project_id is None):
        title = st.text_input("Title", value=project.get("title", ""), key=f"project_title_{key}")
        category = project.get("category")
        index = CATEGORIES.index(category) if category in CATEGORIES else 0
        category = st.selectbox("Category", CATEGORIES, index=index, key=f"project_category_{key}")
        d1, d2 = st.columns(2)
        with d1:
            start = st.date_input(
                "Start date",
                value=_iso_date(project.get("start_date")) or date.today(),
                key=f"project_start_{key}",
            )
        with d2:
            end = st.date_input(
                "End date (blank = ongoing)", value=_iso_date(project.get("end_date")), key=f"project_end_{key}"
            )
        description = st.text_area(
            "Short description", value=project.get("description", ""), key=f"project_description_{key}"
        )
        writeup = st.text_area(
            "Full writeup (optional)", value=project.get("writeup") or "", key=f"project_writeup_{key}"
        )
        tags = st.text_input(
            "Tags (comma-separated)",
            value=", ".join(project.get("tags") or []),
            placeholder="React, AI, Python",
            key=f"project_tags_{key}",
        )
        impact = st.text_input(
            "Impact statement (optional)",
            value=project.get("impact") or "",
            placeholder="e.g., 700+ kg Recycled",
            key=f"project_impact_{key}",
        )
        github_url = st.text_input(
            "GitHub URL (optional)", value=project.get("github_url") or "", key=f"project_github_{key}"
        )
        live_url = st.text_input("Live URL (optional)", value=project.get("live_url") or "", key=f"project_live_{key}")
        f1, f2 = st.columns(2)
        with f1:
            is_featured = st.checkbox(
                "Mark as featured", value=bool(project.get("is_featured")), key=f"project_featured_{key}"
            )
        with f2:
            is_work = st.checkbox("Work", value=bool(project.get("is_work")), key=f"project_work_{key}")
        keep = project.get("image_urls") or []
        if keep:
            keep = st.multiselect("Keep photos", keep, default=keep, key=f"project_keep_{key}")
        uploads = st.file_uploader("Add photos", accept_multiple_files=True, key=f"project_photos_{key}")
        submitted = st.form_submit_button("Update project" if project_id else "Add project", type="primary")

    if not submitted:
        return
    values = {
        "title": title,
        "category": category,
        "start_date": start,
        "end_date": end,
        "description": description,
        "writeup": writeup,
        "tags": tags,
        "impact": impact,
        "github_url": github_url,
        "live_url": live_url,
        "is_featured": is_featured,
        "is_work": is_work,
        "image_urls": keep,
    }
    files = [LocalFile(u.name, u.type or "", u.getvalue()) for u in uploads or []]
    try:
        _, errors = save_project(
            client,
            settings.storage_bucket,
            values,
            files,
            project_id=project_id,
            max_bytes=settings.max_upload_bytes,
        )
    except PortfolioClientError as exc:
        st.error(exc.message)
        return
    st.toast("Project updated" if project_id else "Project added")
    if errors:
        # Saved without the rejected photos; keep the messages on screen.
        for message in errors:
            st.warning(message)
        return
    st.rerun()


def render_projects_manager(client: PortfolioClient) -> None:
    st.markdown("### Projects")
    with st.expander("Add project"):
        render_project_form(client)
    try:
        projects = client.list_projects()
    except PortfolioClientError as exc:
        st.error(f"Could not load projects: {exc.message}")
        return

    featured = sum(1 for p in projects if p.get("is_featured"))
    st.caption(f"{len(projects)} projects, {featured}/{get_settings().max_featured_projects} featured")

    for project in projects:
        project_id = project["id"]
        with st.container(border=True):
            col1, col2, col3 = st.columns([4, 1, 1])
            with col1:
                icon = CATEGORY_ICONS.get(project.get("category", ""), "")
                star = "★ " if project.get("is_featured") else ""
                st.markdown(f"**{star}{project.get('title', '')}**")
                st.caption(
                    f"{icon} {project.get('category', '')} · "
                    f"{format_date_range(project.get('start_date'), project.get('end_date'))} · "
                    f"{'Work' if project.get('is_work') else 'Foundations'}"
                )
            with col2:
                label = "Unfeature" if project.get("is_featured") else "Feature"
                if st.button(label, key=f"feature_{project_id}", use_container_width=True):
                    _run(lambda: client.manage_projects("toggleFeatured", project_id=project_id))
            with col3:
                if st.button("Delete", key=f"delete_{project_id}", use_container_width=True):
                    _run(lambda: client.manage_projects("delete", project_id=project_id), "Project deleted")
            with st.expander("Edit"):
                render_project_form(client, project)


def render_activity_form(client: PortfolioClient, activity: dict | None = None) -> None:
    activity = activity or {}
    activity_id = activity.get("id")
    key = activity_id or "new"
    with st.form(f"activity_form_{key}", clear_on_submit=activity_id is None):
        title = st.text_input("Title", value=activity.get("title", ""), key=f"activity_title_{key}")
        category = st.text_input(
            "Category",
            value=activity.get("category", ""),
            placeholder="e.g. Leadership",
            key=f"activity_category_{key}",
        )
        description = st.text_area(
            "Description", value=activity.get("description", ""), key=f"activity_description_{key}"
        )
        start = st.text_input(
            "Start date",
            value=activity.get("start_date") or "",
            placeholder="YYYY-MM-DD",
            key=f"activity_start_{key}",
        )
        end = st.text_input(
            "End date (blank = ongoing)",
            value=activity.get("end_date") or "",
            placeholder="YYYY-MM-DD",
            key=f"activity_end_{key}",
        )
        submitted = st.form_submit_button("Update activity" if activity_id else "Save activity")
    if submitted:
        data = activity_payload(
            {"title": title, "category": category, "description": description, "start_date": start, "end_date": end}
        )
        if activity_id:
            _run(lambda: client.manage_activities("update", data, activity_id=activity_id), "Activity updated")
        else:
            _run(lambda: client.manage_activities("create", data), "Activity saved")


def render_activities_manager(client: PortfolioClient) -> None:
    st.markdown("### Activities")
    with st.expander("Add activity"):
        render_activity_form(client)
    try:
        activities = client.list_activities()
    except PortfolioClientError as exc:
        st.error(f"Could not load activities: {exc.message}")
        return
    for activity in activities:
        activity_id = activity["id"]
        col1, col2 = st.columns([5, 1])
        with col1:
            st.markdown(f"**{activity.get('title', '')}** · {activity.get('category', '')}")
        with col2:
            if st.button("Delete", key=f"delete_activity_{activity_id}", use_container_width=True):
                _run(lambda: client.manage_activities("delete", activity_id=activity_id), "Activity deleted")
        with st.expander("Edit"):
            render_activity_form(client, activity)


def render_dashboard(client: PortfolioClient, auth: AuthContext) -> None:
    col1, col2 = st.columns([4, 1])
    with col1:
        st.title("Admin Hub")
        st.caption((auth.user or {}).get("email", ""))
    with col2:
        if st.button("Sign out", use_container_width=True):
            sign_out()
            st.rerun()

    tab_projects, tab_activities, tab_import = st.tabs(["Projects", "Activities", "AI import"])
    with tab_projects:
        render_projects_manager(client)
    with tab_activities:
        render_activities_manager(client)
    with tab_import:
        target = st.radio("Import into", ["Work", "Foundations"], horizontal=True)
        render_import_wizard(get_wizard(default_is_work=target == "Work"))


# =============================================================================
# Import wizard
# =============================================================================


def _render_input(wizard: ImportWizard) -> None:
    content = st.text_area(
        "Paste your content",
        value=wizard.content,
        height=240,
        placeholder="Resume text, LinkedIn export, project notes...",
    )
    if st.button("Process with AI", type="primary", disabled=wizard.processing):
        with st.spinner("Extracting projects..."):
            if wizard.process(content):
                st.rerun()


def _render_review(wizard: ImportWizard) -> None:
    st.caption(wizard.entry_count_label)
    for entry in list(wizard.entries):
        with st.container(border=True):
            col1, col2 = st.columns([5, 1])
            with col1:
                st.markdown(f"**{entry.title}**")
                st.caption(entry.extracted.get("description") or "")
            with col2:
                if st.button("Remove", key=f"remove_{entry.key}", use_container_width=True):
                    wizard.remove_entry(entry.key)
                    st.rerun()

            index = CATEGORIES.index(entry.category) if entry.category in CATEGORIES else 0
            category = st.selectbox("Category", CATEGORIES, index=index, key=f"cat_{entry.key}")
            d1, d2 = st.columns(2)
            with d1:
                start = st.text_input("Start date", value=entry.start_date or "", key=f"start_{entry.key}")
            with d2:
                end = st.text_input("End date", value=entry.end_date or "", key=f"end_{entry.key}")
            f1, f2 = st.columns(2)
            with f1:
                is_work = st.checkbox("Work", value=entry.is_work, key=f"work_{entry.key}")
            with f2:
                is_featured = st.checkbox("Featured", value=entry.is_featured, key=f"featured_{entry.key}")
            wizard.update_entry(
                entry.key,
                category=category,
                start_date=start or None,
                end_date=end or None,
                is_work=is_work,
                is_featured=is_featured,
            )

            if entry.extracted.get("writeup"):
                label = "Hide writeup" if entry.show_writeup else "Show writeup"
                if st.button(label, key=f"writeup_{entry.key}"):
                    wizard.toggle_writeup(entry.key)
                    st.rerun()
                if entry.show_writeup:
                    st.markdown(entry.extracted["writeup"])

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Back", use_container_width=True):
            wizard.back_to_input()
            st.rerun()
    with col2:
        if st.button("Add photos", type="primary", disabled=not wizard.entries, use_container_width=True):
            wizard.to_details()
            st.rerun()


def _render_details(wizard: ImportWizard) -> None:
    entry = wizard.current
    if entry is None:
        return
    st.markdown(f"**{entry.title}** ({wizard.index + 1} of {len(wizard.entries)})")

    with st.form(f"files_{entry.key}", clear_on_submit=True):
        uploads = st.file_uploader("Photos", type=None, accept_multiple_files=True)
        attach = st.form_submit_button("Attach")
    if attach and uploads:
        wizard.add_files(entry.key, [LocalFile(u.name, u.type or "", u.getvalue()) for u in uploads])
        st.rerun()

    for position, f in enumerate(list(entry.files)):
        col1, col2 = st.columns([5, 1])
        with col1:
            st.caption(f.name)
        with col2:
            if st.button("✕", key=f"rm_file_{entry.key}_{position}"):
                wizard.remove_file(entry.key, position)
                st.rerun()

    last = wizard.index == len(wizard.entries) - 1
    col1, col2, col3 = st.columns(3)
    with col1:
        if st.button("Back to review", use_container_width=True, disabled=wizard.saving):
            wizard.back_to_review()
            st.rerun()
    with col2:
        if st.button("Skip photo", use_container_width=True, disabled=wizard.saving):
            with st.spinner("Saving..."):
                wizard.skip_photo()
            st.rerun()
    with col3:
        if st.button("Save all" if last else "Next", type="primary", use_container_width=True, disabled=wizard.saving):
            with st.spinner("Saving..."):
                wizard.next()
            st.rerun()


def render_import_wizard(wizard: ImportWizard) -> None:
    _flush_notices(wizard)

    if wizard.step == Step.INPUT:
        _render_input(wizard)
    elif wizard.step == Step.REVIEW:
        _render_review(wizard)
    elif wizard.step == Step.DETAILS:
        _render_details(wizard)
    else:
        st.success("All set!")
        time.sleep(wizard.close_delay)
        wizard.poll()
        st.rerun()
