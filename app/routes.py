import logging

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from .errors import RemoteStoreError, SelectorError
from .schemas import ApplicationForm, validation_errors

bp = Blueprint("main", __name__)

logger = logging.getLogger(__name__)


def get_selector():
    return current_app.extensions["sheet_selector"]


def get_writer():
    return current_app.extensions["row_writer"]


@bp.errorhandler(ValidationError)
def handle_validation_error(e):
    return jsonify(success=False, errors=validation_errors(e)), 422


@bp.errorhandler(SelectorError)
def handle_selector_error(e):
    """Routing/config problems are the client's to fix"""
    logger.warning("Could not route application: %s", e)
    return jsonify(success=False, message=str(e)), 400


@bp.errorhandler(RemoteStoreError)
def handle_store_error(e):
    logger.error("Error processing application: %s", e)
    return jsonify(success=False, message=str(e) or "Failed to submit application"), 500


@bp.route("/health")
def health():
    return jsonify(status="ok")


@bp.route("/api/applications/submit", methods=["POST"])
def submit_application():
    """Validate a submission, pick its sheet and append it"""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = request.form.to_dict()

    form = ApplicationForm.model_validate(payload)
    record = form.to_record()

    target = get_selector().resolve(record.visa_type, record.desired_country)
    logger.info("Sending data to sheet: %s (%s)", target.name, target.id)

    get_writer().append(target.id, record)

    return jsonify(
        success=True,
        message="Application submitted successfully",
        data={
            "applicant": record.name,
            "targetSheet": target.name,
            "visaType": record.visa_type,
            "country": record.desired_country,
        },
    )


@bp.route("/api/applications/available-countries")
def available_countries():
    return jsonify(success=True, data=get_selector().available_countries())
