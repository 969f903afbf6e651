"""
Taskboard Story Blueprint — split, tasks view, form contexts, change feed.

Endpoints:
    POST   /api/v1/stories/<id>/split            — Split story into a sprint / backlog
    GET    /api/v1/stories/<id>/tasks            — Story tasks view (phase times, progress)
    GET    /api/v1/stories/add-context           — Lookup data for the add-story form
    GET    /api/v1/stories/<id>/edit-context     — Story + lookup data for the edit form
    GET    /api/v1/changes                       — Change feed (filterable, paginated)

Errors raised by the services (ValidationError, WorkflowError) are turned
into responses by the handlers registered in ``create_app``.
"""

import asyncio

from flask import Blueprint, current_app, g, jsonify, request

from taskboard import limiter
from taskboard.services import get_collaborators
from taskboard.services.change_feed import list_changes
from taskboard.services.story_report import StoryReportService
from taskboard.services.story_split import StorySplitWorkflow, parse_int, parse_split_request
from taskboard.blueprints import paginate_query
from taskboard.utils.errors import E, api_error

story_bp = Blueprint("story", __name__, url_prefix="/api/v1")


def _split_rate_limit():
    return current_app.config.get("SPLIT_RATE_LIMIT", "30 per minute")


def _report_service():
    collab = get_collaborators()
    return StoryReportService(collab.data, collab.access, collab.time_formatter)


def _query_int(name, minimum=0):
    return parse_int(request.args.get(name), name, minimum)


# ═════════════════════════════════════════════════════════════════════════════
# SPLIT
# ═════════════════════════════════════════════════════════════════════════════

@story_bp.route("/stories/<int:story_id>/split", methods=["POST"])
@limiter.limit(_split_rate_limit)
def split_story(story_id):
    """Split a story.

    Body:
        sprint_id  — destination sprint (0 = project backlog)
        project_id — project whose open phases decide which tasks move
    """
    data = request.get_json(silent=True) or {}
    split_request = parse_split_request({
        "story_id": story_id,
        "sprint_id": data.get("sprint_id"),
        "project_id": data.get("project_id"),
    })

    collab = get_collaborators()
    workflow = StorySplitWorkflow(collab.data, collab.persistence, collab.notifier)
    result = asyncio.run(workflow.split(split_request))
    return jsonify(result.to_dict()), 200


# ═════════════════════════════════════════════════════════════════════════════
# READ PATH
# ═════════════════════════════════════════════════════════════════════════════

@story_bp.route("/stories/<int:story_id>/tasks", methods=["GET"])
def story_tasks(story_id):
    """Story tasks view: annotated tasks, phase durations and progress."""
    user = getattr(g, "current_user", None)
    if user is None:
        return api_error(E.UNAUTHENTICATED, "X-User-ID header with a known user is required")

    report = asyncio.run(_report_service().story_tasks(story_id, user))
    return jsonify(report.to_dict()), 200


@story_bp.route("/stories/add-context", methods=["GET"])
def story_add_context():
    """Milestones and task types for the add-story form."""
    project_id = _query_int("project_id", minimum=1)
    sprint_id = _query_int("sprint_id", minimum=0)
    # Any other query params are echoed back to prefill the form.
    form_data = {k: v for k, v in request.args.items() if k not in ("project_id", "sprint_id")}

    context = asyncio.run(_report_service().story_add_context(project_id, sprint_id, form_data))
    return jsonify(context), 200


@story_bp.route("/stories/<int:story_id>/edit-context", methods=["GET"])
def story_edit_context(story_id):
    """Story, milestones of its project and task types for the edit form."""
    context = asyncio.run(_report_service().story_edit_context(story_id))
    return jsonify(context), 200


# ═════════════════════════════════════════════════════════════════════════════
# CHANGE FEED
# ═════════════════════════════════════════════════════════════════════════════

@story_bp.route("/changes", methods=["GET"])
def change_feed():
    """List published changes, oldest first.

    Query params:
        entity_type — story | task
        entity_id   — id of the changed record
        limit / offset
    """
    entity_id = request.args.get("entity_id")
    if entity_id is not None:
        entity_id = parse_int(entity_id, "entity_id")

    query = list_changes(entity_type=request.args.get("entity_type"), entity_id=entity_id)
    items, total = paginate_query(query)
    return jsonify({"items": [i.to_dict() for i in items], "total": total}), 200
