"""Local JSON API over the stores and the cost engine.

Routes:
    GET    /api/health
    GET    /api/printers            POST /api/printers       DELETE /api/printers/{id}
    GET    /api/materials           POST /api/materials      DELETE /api/materials/{id}
    GET    /api/settings            PUT  /api/settings
    POST   /api/calculate           → cost breakdown, nothing saved
    GET    /api/projects            POST /api/projects       (calculate and save)
    GET    /api/projects/{id}       DELETE /api/projects/{id}
    GET    /api/dashboard           → count, average total, 5 most recent
    GET    /api/backup              → backup document as a download
    POST   /api/restore             → raw backup document in the body

Handlers parse and validate request bodies, then call the stores and the
calculator synchronously.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from aiohttp import web

from .backends import JsonFileBackend, StorageBackend
from .backup import BackupManager, backup_filename
from .calculator import calculate
from .config import AppConfig
from .entity_store import MATERIALS, PRINTERS, EntityStore
from .models import Material, Printer, ProjectInputs, Settings, ValidationError
from .projects import ProjectHistory, build_project
from .settings_store import SettingsStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    store: EntityStore
    settings: SettingsStore
    history: ProjectHistory
    backup: BackupManager


SERVICES = web.AppKey("services", Services)


def build_services(backend: StorageBackend, config: AppConfig) -> Services:
    store = EntityStore(backend)
    settings = SettingsStore(backend)
    return Services(
        store=store,
        settings=settings,
        history=ProjectHistory(store, limit=config.project_history_limit),
        backup=BackupManager(store, settings),
    )


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError(f"request body is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


@web.middleware
async def validation_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except ValidationError as e:
        logger.warning("Rejected %s %s: %s", request.method, request.path, e)
        return _error(str(e), 400)


def _services(request: web.Request) -> Services:
    return request.app[SERVICES]


def _required_id(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None or value == "":
        raise ValidationError("select a printer and a material")
    return str(value)


# ── Health ──────────────────────────────────────────────────────────

async def handle_health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


# ── Printers and materials ──────────────────────────────────────────

async def handle_list_printers(request: web.Request) -> web.Response:
    return web.json_response(_services(request).store.list(PRINTERS))


async def handle_save_printer(request: web.Request) -> web.Response:
    printer = Printer.from_input(await _read_json(request))
    data = printer.to_dict()
    if printer.id is None:
        del data["id"]
    result = _services(request).store.save(PRINTERS, data)
    return web.json_response(result.record, status=201 if result.created else 200)


async def handle_delete_printer(request: web.Request) -> web.Response:
    removed = _services(request).store.delete(PRINTERS, request.match_info["id"])
    return web.json_response({"deleted": removed})


async def handle_list_materials(request: web.Request) -> web.Response:
    return web.json_response(_services(request).store.list(MATERIALS))


async def handle_save_material(request: web.Request) -> web.Response:
    material = Material.from_input(await _read_json(request))
    data = material.to_dict()
    if material.id is None:
        del data["id"]
    result = _services(request).store.save(MATERIALS, data)
    return web.json_response(result.record, status=201 if result.created else 200)


async def handle_delete_material(request: web.Request) -> web.Response:
    removed = _services(request).store.delete(MATERIALS, request.match_info["id"])
    return web.json_response({"deleted": removed})


# ── Settings ────────────────────────────────────────────────────────

async def handle_get_settings(request: web.Request) -> web.Response:
    return web.json_response(_services(request).settings.get_raw())


async def handle_put_settings(request: web.Request) -> web.Response:
    settings_store = _services(request).settings
    current = settings_store.get()
    settings = Settings.from_input(await _read_json(request), currency=current.currency)
    settings_store.set(settings)
    return web.json_response(settings_store.get_raw())


# ── Calculation and projects ────────────────────────────────────────

async def handle_calculate(request: web.Request) -> web.Response:
    data = await _read_json(request)
    services = _services(request)
    printer_id = _required_id(data, "printerId")
    material_id = _required_id(data, "materialId")
    inputs = ProjectInputs.from_input(data)

    result = calculate(services.store, services.settings, printer_id, material_id, inputs)
    if not result.ok:
        return _error(result.error or "not found", 404)
    return web.json_response(result.breakdown.to_dict())


async def handle_list_projects(request: web.Request) -> web.Response:
    return web.json_response(_services(request).history.list())


async def handle_save_project(request: web.Request) -> web.Response:
    """Recalculate from the submitted inputs and store the result."""
    data = await _read_json(request)
    services = _services(request)
    printer_id = _required_id(data, "printerId")
    material_id = _required_id(data, "materialId")
    inputs = ProjectInputs.from_input(data)

    result = calculate(services.store, services.settings, printer_id, material_id, inputs)
    if not result.ok:
        return _error(result.error or "not found", 404)

    project = build_project(
        name=data.get("name"),
        printer_id=printer_id,
        material_id=material_id,
        inputs=inputs,
        breakdown=result.breakdown,
        project_id=str(data["id"]) if data.get("id") else None,
    )
    saved = services.history.save(project)
    return web.json_response(saved.record, status=201 if saved.created else 200)


async def handle_get_project(request: web.Request) -> web.Response:
    project = _services(request).history.load(request.match_info["id"])
    if project is None:
        return _error(f"project {request.match_info['id']} not found", 404)
    return web.json_response(project.to_dict())


async def handle_delete_project(request: web.Request) -> web.Response:
    removed = _services(request).history.delete(request.match_info["id"])
    return web.json_response({"deleted": removed})


async def handle_dashboard(request: web.Request) -> web.Response:
    return web.json_response(_services(request).history.summary().to_dict())


# ── Backup / restore ────────────────────────────────────────────────

async def handle_backup(request: web.Request) -> web.Response:
    document = _services(request).backup.export()
    return web.json_response(
        document,
        headers={"Content-Disposition": f'attachment; filename="{backup_filename()}"'},
    )


async def handle_restore(request: web.Request) -> web.Response:
    body = await request.read()
    if not _services(request).backup.import_data(body):
        return _error("could not import data, check the file", 400)
    return web.json_response({"status": "restored"})


# ── App setup ───────────────────────────────────────────────────────

def create_app(config: AppConfig, backend: StorageBackend | None = None) -> web.Application:
    """Create the API app; storage defaults to JSON files in config.data_dir."""
    if backend is None:
        backend = JsonFileBackend(config.data_dir)
    app = web.Application(middlewares=[validation_middleware])
    app[SERVICES] = build_services(backend, config)

    app.router.add_get("/api/health", handle_health)
    app.router.add_get("/api/printers", handle_list_printers)
    app.router.add_post("/api/printers", handle_save_printer)
    app.router.add_delete("/api/printers/{id}", handle_delete_printer)
    app.router.add_get("/api/materials", handle_list_materials)
    app.router.add_post("/api/materials", handle_save_material)
    app.router.add_delete("/api/materials/{id}", handle_delete_material)
    app.router.add_get("/api/settings", handle_get_settings)
    app.router.add_put("/api/settings", handle_put_settings)
    app.router.add_post("/api/calculate", handle_calculate)
    app.router.add_get("/api/projects", handle_list_projects)
    app.router.add_post("/api/projects", handle_save_project)
    app.router.add_get("/api/projects/{id}", handle_get_project)
    app.router.add_delete("/api/projects/{id}", handle_delete_project)
    app.router.add_get("/api/dashboard", handle_dashboard)
    app.router.add_get("/api/backup", handle_backup)
    app.router.add_post("/api/restore", handle_restore)
    return app
