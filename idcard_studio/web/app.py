"""Flask application for the ID card studio."""

import os
import uuid
import logging
import threading
from io import BytesIO

from urllib.parse import urlparse

from flask import (
    Flask, render_template, request, jsonify, send_file, Response
)
from markupsafe import Markup

from idcard_studio import config
from idcard_studio.errors import ConfigurationError, StudentNotFound, TemplateNotFound
from idcard_studio.export.canvas_renderer import InteractiveRenderer
from idcard_studio.export.image_renderer import ImageRenderer
from idcard_studio.export.pdf_renderer import DocumentRenderer
from idcard_studio.export.preview_renderer import PreviewRenderer
from idcard_studio.models.student import StudentRecord
from idcard_studio.models.template_design import TemplateDesign
from idcard_studio.printing import PrintRequest
from idcard_studio.utils.fonts import get_font_families
from idcard_studio.web.state import state

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = os.urandom(32)
app.config['MAX_CONTENT_LENGTH'] = config.MAX_CONTENT_LENGTH

ALLOWED_HOSTS = {"localhost", "127.0.0.1"}

os.makedirs(config.EXPORT_DIR, exist_ok=True)


@app.before_request
def csrf_check():
    """Reject non-GET/HEAD/OPTIONS requests with a foreign Origin or Referer."""
    if request.method in ("GET", "HEAD", "OPTIONS"):
        return
    origin = request.headers.get("Origin") or request.headers.get("Referer")
    if origin:
        host = urlparse(origin).hostname
        if host not in ALLOWED_HOSTS:
            return jsonify(error="Forbidden: cross-origin request"), 403


@app.errorhandler(ConfigurationError)
def configuration_error(e):
    return jsonify(error=str(e)), 422


@app.errorhandler(TemplateNotFound)
@app.errorhandler(StudentNotFound)
def not_found(e):
    return jsonify(error=str(e)), 404


def _design_from_json(data) -> TemplateDesign:
    if not isinstance(data, dict):
        raise ConfigurationError("Design must be a JSON object")
    try:
        design = TemplateDesign.from_dict(data)
    except (TypeError, AttributeError, ValueError) as e:
        raise ConfigurationError(f"Malformed design: {e}") from e
    return design.validate()


# ---------------------------------------------------------------------------
# Page route
# ---------------------------------------------------------------------------

@app.route("/")
def index():
    renderer = PreviewRenderer()
    cards = [
        (record, Markup(renderer.render(record.design, None).to_html()))
        for record in state.templates.list()
    ]
    return render_template("index.html", cards=cards)


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

@app.route("/api/templates")
def list_templates():
    category = request.args.get("category") or None
    return jsonify(templates=[r.to_dict() for r in state.templates.list(category)])


@app.route("/api/templates/<template_id>")
def get_template(template_id):
    return jsonify(state.templates.get(template_id).to_dict())


@app.route("/api/templates/seed", methods=["POST"])
def seed_templates():
    data = request.get_json(silent=True) or {}
    force = data.get("force") is True
    count = state.templates.seed(force=force)
    if not count:
        return jsonify(
            seeded=0,
            message="Templates already exist. Use 'force: true' in request body to re-seed.",
        )
    return jsonify(seeded=count, message=f"Seeded {count} templates")


@app.route("/api/templates/<template_id>/design", methods=["PUT"])
def update_design(template_id):
    design = _design_from_json(request.get_json(silent=True))
    record = state.templates.update_design(template_id, design)
    return jsonify(ok=True, template=record.to_dict())


# ---------------------------------------------------------------------------
# Students & settings
# ---------------------------------------------------------------------------

@app.route("/api/students")
def get_students():
    return jsonify(students=[
        dict(s.to_dict(), id=sid) for sid, s in state.students.items()
    ])


@app.route("/api/students", methods=["PUT"])
def replace_students():
    """Replace the student roster with ``{"students": [{"id": ..., ...}]}``."""
    data = request.get_json(silent=True) or {}
    rows = data.get("students")
    if not isinstance(rows, list):
        return jsonify(error="Expected a 'students' list"), 400

    students = {}
    for i, row in enumerate(rows):
        if not isinstance(row, dict) or not row.get("id"):
            return jsonify(error=f"Student {i + 1} has no id"), 400
        students[str(row["id"])] = StudentRecord.from_dict(row)
    with state.lock:
        state.students = students
    return jsonify(ok=True, count=len(students))


@app.route("/api/settings")
def get_settings():
    return jsonify(state.school_settings())


@app.route("/api/settings", methods=["PUT"])
def update_settings():
    data = request.get_json(silent=True)
    if isinstance(data, list):
        data = {row.get("key"): row.get("value") for row in data if isinstance(row, dict)}
    if not isinstance(data, dict):
        return jsonify(error="Expected an object or a list of key/value rows"), 400
    with state.lock:
        state.settings.update(data)
    return jsonify(ok=True, settings=state.school_settings())


@app.route("/api/fonts")
def get_fonts():
    families = get_font_families()
    return jsonify(fonts=families)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

@app.route("/api/templates/<template_id>/preview")
def preview_template(template_id):
    record = state.templates.get(template_id)
    student = state.student(request.args.get("student"))
    card = PreviewRenderer().render(record.design, student, state.school_settings())
    return Response(card.to_html(), mimetype="text/html")


@app.route("/api/templates/<template_id>/scene")
def template_scene(template_id):
    record = state.templates.get(template_id)
    student = state.student(request.args.get("student"))
    try:
        scale = float(request.args.get("scale", config.EDITOR_SCALE))
    except ValueError:
        return jsonify(error="scale must be a number"), 400
    scene = InteractiveRenderer(scale).render(record.design, student, state.school_settings())
    return jsonify(scene.to_dict())


@app.route("/api/render/<template_id>/<student_id>.png")
def render_png(template_id, student_id):
    record = state.templates.get(template_id)
    student = state.student(student_id)
    renderer = ImageRenderer()
    img = renderer.render(record.design, student, state.school_settings())
    buf = BytesIO()
    img.save(buf, format="PNG", dpi=(renderer.dpi, renderer.dpi))
    buf.seek(0)
    return send_file(
        buf,
        mimetype="image/png",
        as_attachment=request.args.get("download") == "1",
        download_name=f"card_{student_id}.png",
    )


@app.route("/api/render/<template_id>/<student_id>.pdf")
def render_pdf(template_id, student_id):
    record = state.templates.get(template_id)
    student = state.student(student_id)
    doc = DocumentRenderer().render(record.design, student, state.school_settings())
    return send_file(
        BytesIO(doc.pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"card_{student_id}.pdf",
    )


# ---------------------------------------------------------------------------
# Print batches
# ---------------------------------------------------------------------------

@app.route("/api/print-batch", methods=["POST"])
def start_print_batch():
    data = request.get_json(silent=True) or {}
    jobs = data.get("jobs")
    if not isinstance(jobs, list) or not jobs:
        return jsonify(error="Expected a non-empty 'jobs' list"), 400
    try:
        print_requests = [PrintRequest.from_dict(j) for j in jobs]
    except (AttributeError, TypeError, ValueError) as e:
        return jsonify(error=f"Invalid job: {e}"), 400
    if any(r.copies < 1 for r in print_requests):
        return jsonify(error="copies must be at least 1"), 400

    task_id = str(uuid.uuid4())[:8]
    output_path = os.path.join(config.EXPORT_DIR, f"cards_{task_id}.pdf")

    task = {
        "status": "running",
        "progress": 0,
        "total": sum(r.copies for r in print_requests),
        "path": output_path,
        "error": None,
        "warnings": [],
        "placeholders": [],
    }
    with state.lock:
        state.export_tasks[task_id] = task

    # Capture current state for the thread
    printer = state.printer()
    printer.students = dict(state.students)

    def run_export():
        outcome = printer.print_batch(print_requests)
        if outcome.success:
            with open(output_path, "wb") as f:
                f.write(outcome.data)
        with state.lock:
            task["warnings"] = outcome.warnings
            task["placeholders"] = outcome.placeholders
            if outcome.success:
                task["status"] = "done"
                task["progress"] = outcome.pages
            else:
                task["status"] = "error"
                task["error"] = outcome.error

    t = threading.Thread(target=run_export, daemon=True)
    t.start()

    return jsonify(task_id=task_id)


@app.route("/api/print-batch/status/<task_id>")
def print_batch_status(task_id):
    with state.lock:
        task = state.export_tasks.get(task_id)
        if not task:
            return jsonify(error="Unknown task"), 404
        return jsonify(
            status=task["status"],
            progress=task["progress"],
            total=task["total"],
            error=task["error"],
            warnings=list(task["warnings"]),
            placeholders=list(task["placeholders"]),
        )


@app.route("/api/print-batch/download/<task_id>")
def download_print_batch(task_id):
    task = state.export_tasks.get(task_id)
    if not task or task["status"] != "done":
        return jsonify(error="PDF not ready"), 400
    return send_file(
        task["path"],
        mimetype="application/pdf",
        as_attachment=True,
        download_name="id_cards.pdf",
    )


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main():
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("ID Card Studio Web - http://localhost:%d", config.PORT)
    app.run(host="127.0.0.1", port=config.PORT, debug=config.DEBUG)


if __name__ == "__main__":
    main()
