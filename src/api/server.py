"""Flask API server for vacancy lookup and saved-vacancy tracking."""

import json
import logging
from typing import Optional

from flask import Flask, abort, jsonify, request
from flask_cors import CORS
from pydantic import ValidationError

from config.settings import CORS_ORIGIN, DATABASE_URL, FLASK_DEBUG, FLASK_PORT, LOG_LEVEL
from src.api.schemas import (
    SavedVacanciesQuery,
    SearchVacanciesQuery,
    UpdateChecklistRequest,
    UpdateNotesRequest,
    UpdateProgressRequest,
)
from src.db.base import create_schema
from src.services.errors import NotFoundError, UpstreamError
from src.services.hh_api_client import HhApiClient
from src.services.saved_vacancy_repository import SavedVacancyRepository
from src.services.saved_vacancy_service import SavedVacancyService
from src.services.vacancy_service import VacancyService
from src.services.vacancy_store import VacancyStore

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Header set by the authentication gateway in front of this service
USER_ID_HEADER = "X-User-Id"

# Messages for hh.ru 404s by endpoint; anything else is about a vacancy
UPSTREAM_NOT_FOUND_MESSAGES = {
    "get_employer": "Employer not found",
    "search_vacancies": "Not found on hh.ru",
    "get_dictionaries": "Not found on hh.ru",
    "get_areas": "Not found on hh.ru",
}

# Create Flask app
app = Flask(__name__)
CORS(app, origins=CORS_ORIGIN)

# Service singletons, built on first use
vacancy_service: Optional[VacancyService] = None
saved_vacancy_service: Optional[SavedVacancyService] = None


def _build_services() -> None:
    global vacancy_service, saved_vacancy_service
    logger.info("Initializing services against %s", DATABASE_URL)
    create_schema(DATABASE_URL)
    client = HhApiClient()
    store = VacancyStore(client=client, database_url=DATABASE_URL)
    if vacancy_service is None:
        vacancy_service = VacancyService(client=client, store=store)
    if saved_vacancy_service is None:
        saved_vacancy_service = SavedVacancyService(
            repository=SavedVacancyRepository(database_url=DATABASE_URL),
            vacancy_store=store,
        )


def get_vacancy_service() -> VacancyService:
    if vacancy_service is None:
        _build_services()
    return vacancy_service


def get_saved_vacancy_service() -> SavedVacancyService:
    if saved_vacancy_service is None:
        _build_services()
    return saved_vacancy_service


def _current_user_id() -> str:
    user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
    if not user_id:
        abort(401)
    return user_id


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


@app.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "service": "jobflow-tracker"
    }), 200


@app.route('/vacancies/search', methods=['GET'])
def search_vacancies():
    """Search hh.ru vacancies; the result page is returned as hh.ru sends it."""
    query = SearchVacanciesQuery.model_validate(request.args.to_dict())
    result = get_vacancy_service().search(query.to_criteria())
    return jsonify({
        "status": "success",
        "data": result
    }), 200


@app.route('/vacancies/dictionaries', methods=['GET'])
def get_dictionaries():
    return jsonify({
        "status": "success",
        "data": get_vacancy_service().get_dictionaries()
    }), 200


@app.route('/vacancies/areas', methods=['GET'])
def get_areas():
    return jsonify({
        "status": "success",
        "data": get_vacancy_service().get_areas()
    }), 200


@app.route('/vacancies/<external_id>', methods=['GET'])
def get_vacancy(external_id: str):
    """Fetch one vacancy through the cache."""
    vacancy = get_vacancy_service().get_vacancy(external_id)
    return jsonify({
        "status": "success",
        "data": vacancy.to_dict()
    }), 200


@app.route('/employers/<employer_id>', methods=['GET'])
def get_employer(employer_id: str):
    return jsonify({
        "status": "success",
        "data": get_vacancy_service().get_employer(employer_id)
    }), 200


@app.route('/users/me/vacancies', methods=['GET'])
def list_saved_vacancies():
    """List saved vacancies.

    Query parameters:
        status: Only entries whose current status matches
        sortBy: savedDate (default) or name
        sortOrder: asc or desc (default)
        page: Zero-based page number
        limit: Page size, 1-100
    """
    user_id = _current_user_id()
    query = SavedVacanciesQuery.model_validate(request.args.to_dict())
    page = get_saved_vacancy_service().list(user_id, query.to_query())
    return jsonify({
        "status": "success",
        **page.to_dict()
    }), 200


@app.route('/users/me/vacancies/statistics', methods=['GET'])
def saved_vacancy_statistics():
    user_id = _current_user_id()
    return jsonify({
        "status": "success",
        "statistics": get_saved_vacancy_service().statistics(user_id)
    }), 200


@app.route('/users/me/vacancies/<external_id>', methods=['POST'])
def save_vacancy(external_id: str):
    user_id = _current_user_id()
    entry = get_saved_vacancy_service().add(user_id, external_id)
    return jsonify({
        "status": "success",
        "saved_vacancy": entry.to_dict()
    }), 200


@app.route('/users/me/vacancies/<external_id>', methods=['GET'])
def get_saved_vacancy(external_id: str):
    user_id = _current_user_id()
    entry = get_saved_vacancy_service().get_detail(user_id, external_id)
    return jsonify({
        "status": "success",
        "saved_vacancy": entry.to_dict()
    }), 200


@app.route('/users/me/vacancies/<external_id>', methods=['DELETE'])
def remove_saved_vacancy(external_id: str):
    user_id = _current_user_id()
    removed = get_saved_vacancy_service().remove(user_id, external_id)
    return jsonify({
        "status": "success",
        "removed": removed
    }), 200


@app.route('/users/me/vacancies/<external_id>/refresh', methods=['POST'])
def refresh_saved_vacancy(external_id: str):
    user_id = _current_user_id()
    entry = get_saved_vacancy_service().refresh(user_id, external_id)
    return jsonify({
        "status": "success",
        "saved_vacancy": entry.to_dict()
    }), 200


@app.route('/users/me/vacancies/<external_id>/progress', methods=['PUT'])
def update_progress(external_id: str):
    user_id = _current_user_id()
    body = UpdateProgressRequest.model_validate(_json_body())
    entry = get_saved_vacancy_service().set_progress(user_id, external_id, body.status)
    return jsonify({
        "status": "success",
        "saved_vacancy": entry.to_dict()
    }), 200


@app.route('/users/me/vacancies/<external_id>/notes', methods=['PUT'])
def update_notes(external_id: str):
    user_id = _current_user_id()
    body = UpdateNotesRequest.model_validate(_json_body())
    entry = get_saved_vacancy_service().set_notes(user_id, external_id, body.notes)
    return jsonify({
        "status": "success",
        "saved_vacancy": entry.to_dict()
    }), 200


@app.route('/users/me/vacancies/<external_id>/checklist', methods=['PUT'])
def update_checklist(external_id: str):
    user_id = _current_user_id()
    body = UpdateChecklistRequest.model_validate(_json_body())
    entry = get_saved_vacancy_service().set_checklist(user_id, external_id, body.to_items())
    return jsonify({
        "status": "success",
        "saved_vacancy": entry.to_dict()
    }), 200


@app.errorhandler(ValidationError)
def validation_error(error: ValidationError):
    """Handle request validation failures."""
    return jsonify({
        "error": "Invalid request",
        "details": json.loads(error.json(include_url=False)),
        "status": "failed"
    }), 400


@app.errorhandler(NotFoundError)
def domain_not_found(error: NotFoundError):
    return jsonify({
        "error": str(error),
        "status": "failed"
    }), 404


@app.errorhandler(UpstreamError)
def upstream_error(error: UpstreamError):
    """Resources missing on hh.ru become 404; other upstream failures keep their status."""
    if error.is_not_found:
        return jsonify({
            "error": UPSTREAM_NOT_FOUND_MESSAGES.get(request.endpoint, "Vacancy not found"),
            "status": "failed"
        }), 404

    logger.error(f"hh.ru request failed: {error}")
    return jsonify({
        "error": "hh.ru request failed",
        "upstream_status": error.status_code,
        "upstream_body": error.body,
        "status": "failed"
    }), error.status_code or 502


@app.errorhandler(401)
def unauthorized(error):
    return jsonify({
        "error": f"{USER_ID_HEADER} header is required",
        "status": "failed"
    }), 401


@app.errorhandler(404)
def not_found(error):
    """Handle 404 errors."""
    return jsonify({
        "error": "Endpoint not found",
        "status": "failed"
    }), 404


@app.errorhandler(500)
def internal_error(error):
    """Handle 500 errors."""
    logger.error(f"Internal server error: {error}")
    return jsonify({
        "error": "Internal server error",
        "status": "failed"
    }), 500


def run_server():
    """Run the Flask server."""
    logger.info("=" * 60)
    logger.info("Configuration Check:")
    logger.info(f"Database: {DATABASE_URL}")
    logger.info(f"CORS origin: {CORS_ORIGIN}")
    logger.info("=" * 60)

    get_vacancy_service()

    # Log registered routes for debugging
    logger.info("=" * 60)
    logger.info("Registered Routes:")
    for rule in app.url_map.iter_rules():
        methods = ','.join(sorted(rule.methods - {'HEAD', 'OPTIONS'}))
        logger.info(f"  {rule.rule:50s} [{methods}]")
    logger.info("=" * 60)

    logger.info(f"Starting Flask server on port {FLASK_PORT}")
    app.run(
        host='0.0.0.0',
        port=FLASK_PORT,
        debug=FLASK_DEBUG,
        threaded=True
    )


if __name__ == '__main__':
    run_server()
