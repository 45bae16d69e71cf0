"""
Flask views for the Closure Audit API.

Thin ingress: decodes uploaded bytes, hands them to the engine, relays its
result as JSON. No state is kept between requests.
"""
from flask import Blueprint, jsonify, request
import logging

from closure_audit import BatchInputError, SourceFile, run_batch
from config import config

logger = logging.getLogger(__name__)
bp = Blueprint('main', __name__)


def decode_upload(raw: bytes) -> str:
    """Decode file bytes as UTF-8, falling back to latin-1."""
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError:
        return raw.decode('latin-1')


API_DOCUMENTATION = {
    "endpoint": f"{config.web.api_prefix}/validate",
    "method": "POST",
    "params": [
        {
            "name": config.web.upload_field,
            "type": "file[] (multipart/form-data)",
            "description": "Closure files: day open (11001), day close (11002), "
                           "sale tickets (11004) and the closure summary (11008).",
        },
    ],
    "response": {
        "certified": "true when no finding has status 'error'",
        "timestamp": "ISO-8601 UTC time of the run",
        "summary": "{totalFiles, errors, warnings}",
        "results": "ordered findings: {status, message, details[], stage}",
        "totals": "aggregated per-category and global totals",
    },
}


@bp.route('/health')
def health():
    return jsonify({"status": "ok"})


@bp.route(f'{config.web.api_prefix}/docs')
def api_docs():
    """Describe the validation endpoint."""
    return jsonify(API_DOCUMENTATION)


@bp.route(f'{config.web.api_prefix}/validate', methods=['POST'])
def validate():
    """Run the audit over the uploaded files."""
    uploads = request.files.getlist(config.web.upload_field)
    uploads = [f for f in uploads if f.filename]
    if not uploads:
        return jsonify({"error": "No files uploaded"}), 400

    files = [SourceFile(name=f.filename, content=decode_upload(f.read())) for f in uploads]
    logger.info(f"[API] Received {len(files)} files")

    try:
        result = run_batch(files)
    except BatchInputError as e:
        logger.warning(f"[API] Rejected batch: {e}")
        return jsonify({"error": str(e)}), 400

    payload = result.to_dict()
    return jsonify({
        "certified": payload["certified"],
        "timestamp": payload["timestamp"],
        "summary": payload["summary"],
        "results": payload["results"],
        "totals": payload["totals"],
    })
