"""HTTP application serving the scheduler's web front end and task API."""

from __future__ import annotations

import argparse
import json
import logging
import os
import posixpath
import re
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from flask import Flask, Response, request, send_from_directory

from .models import Task
from .nextdate import NextDateError, format_date, next_date, normalize_date, parse_date
from .storage import (
    DEFAULT_TASK_LIMIT,
    TaskNotFoundError,
    TaskStore,
    database_path,
    setup_database,
)

log = logging.getLogger(__name__)

DEFAULT_PORT = "7540"
DEFAULT_WEB_DIR = "./web"
JSON_CONTENT_TYPE = "application/json; charset=UTF-8"

_ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]
_INT_RE = re.compile(r"[+-]?\d+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class _ApiError(Exception):
    """A request that is answered with a JSON error and status 400."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def _json_response(payload: Any, status: int = 200) -> Response:
    body = json.dumps(payload, ensure_ascii=False) + "\n"
    return Response(body, status=status, content_type=JSON_CONTENT_TYPE)


def _today() -> date:
    return normalize_date(datetime.now()).date()


def _parse_int(raw: str) -> Optional[int]:
    if not _INT_RE.fullmatch(raw):
        return None
    value = int(raw)
    if not _INT64_MIN <= value <= _INT64_MAX:
        return None
    return value


def _task_id_from_query() -> int:
    raw = request.args.get("id", "")
    if not raw:
        raise _ApiError("Не указан идентификатор задачи")
    task_id = _parse_int(raw)
    if task_id is None:
        log.error("invalid task id: %s", raw)
        raise _ApiError("Идентификатор задачи должен быть числом")
    return task_id


def _decode_task() -> Task:
    text = request.get_data(as_text=True).lstrip(" \t\r\n")
    try:
        value, _ = json.JSONDecoder().raw_decode(text)
        return Task.from_mapping(value)
    except (ValueError, TypeError) as exc:
        log.error("invalid JSON: %s", exc)
        raise _ApiError("Неверный формат JSON") from None


def _form_value(name: str) -> str:
    if name in request.form:
        return request.form.get(name, "")
    return request.args.get(name, "")


def create_app(store: TaskStore, web_dir: Union[str, os.PathLike]) -> Flask:
    """Build the web application around a task store and a front-end directory."""
    app = Flask(__name__, static_folder=None)
    root = Path(web_dir).resolve()

    @app.errorhandler(_ApiError)
    def _api_error(exc: _ApiError) -> Response:
        log.error("%s", exc.message)
        return _json_response({"error": exc.message}, status=400)

    def add_task() -> Response:
        task = _decode_task()
        today = _today()
        if not task.date:
            task.date = format_date(today)
        else:
            try:
                parsed = parse_date(task.date)
            except ValueError:
                raise _ApiError("Неверный формат даты (ожидается YYYYMMDD)") from None
            if parsed <= today:
                if not task.repeat:
                    task.date = format_date(today)
                else:
                    try:
                        task.date = next_date(today, task.date, task.repeat)
                    except NextDateError:
                        raise _ApiError("Некорректное правило повторения") from None
        if not task.title:
            raise _ApiError("Не указан заголовок задачи")
        try:
            new_id = store.add_task(task.date, task.title, task.comment, task.repeat)
        except sqlite3.Error as exc:
            log.error("failed to add task %r: %s", task.title, exc)
            raise _ApiError("Не удалось добавить задачу") from None
        log.info("task added with id %d", new_id)
        return _json_response({"id": str(new_id)})

    def get_task() -> Response:
        task_id = _task_id_from_query()
        try:
            task = store.get_task(task_id)
        except (TaskNotFoundError, sqlite3.Error) as exc:
            log.error("failed to get task %d: %s", task_id, exc)
            raise _ApiError("Ошибка при получении задачи") from None
        return _json_response(task.to_dict())

    def edit_task() -> Response:
        task = _decode_task()
        if not task.id:
            raise _ApiError("Не указан идентификатор задачи")
        if task.date:
            try:
                parse_date(task.date)
            except ValueError:
                raise _ApiError("Неверный формат даты (ожидается YYYYMMDD)") from None
        else:
            task.date = format_date(_today())
        if not task.title:
            raise _ApiError("Заголовок задачи обязателен")
        try:
            changed = store.update_task(task)
        except sqlite3.Error as exc:
            log.error("failed to update task %s: %s", task.id, exc)
            changed = 0
        if changed == 0:
            raise _ApiError("Задача не найдена или не удалось обновить")
        return _json_response({})

    def delete_task() -> Response:
        task_id = _task_id_from_query()
        try:
            removed = store.delete_task(task_id)
        except sqlite3.Error as exc:
            log.error("failed to delete task %d: %s", task_id, exc)
            raise _ApiError("Не удалось удалить задачу") from None
        if removed == 0:
            log.warning("attempt to delete missing task %d", task_id)
            raise _ApiError("Задача не найдена")
        return _json_response({})

    handlers = {
        "POST": add_task,
        "GET": get_task,
        "PUT": edit_task,
        "DELETE": delete_task,
    }

    @app.route("/api/task", methods=_ALL_METHODS, provide_automatic_options=False)
    def task_endpoint() -> Response:
        log.info("handling %s %s", request.method, request.path)
        handler = handlers.get(request.method)
        if handler is None:
            log.warning("method %s is not supported", request.method)
            return Response("Method not allowed\n", status=405, content_type="text/plain; charset=utf-8")
        return handler()

    @app.route("/api/task/done", methods=_ALL_METHODS, provide_automatic_options=False)
    def task_done() -> Response:
        task_id = _task_id_from_query()
        try:
            task = store.get_task(task_id)
        except (TaskNotFoundError, sqlite3.Error) as exc:
            log.error("failed to get task %d: %s", task_id, exc)
            raise _ApiError("Ошибка при получении задачи") from None

        if not task.repeat:
            try:
                store.delete_task(task_id)
            except sqlite3.Error:
                raise _ApiError("Не удалось удалить задачу") from None
        else:
            try:
                task.date = next_date(_today(), task.date, task.repeat)
            except NextDateError:
                raise _ApiError("Ошибка при расчёте следующей даты") from None
            try:
                store.update_task(task)
            except sqlite3.Error:
                raise _ApiError("Не удалось обновить задачу") from None
        return _json_response({})

    @app.route("/api/tasks", methods=_ALL_METHODS, provide_automatic_options=False)
    def task_list() -> Response:
        limit = DEFAULT_TASK_LIMIT
        raw_limit = request.args.get("limit", "")
        if raw_limit:
            parsed = _parse_int(raw_limit)
            if parsed is None or parsed <= 0:
                raise _ApiError("Неверный параметр 'limit'")
            limit = parsed
        try:
            tasks = store.list_tasks(limit)
        except sqlite3.Error as exc:
            log.error("failed to query tasks: %s", exc)
            raise _ApiError("Failed to retrieve tasks") from None
        return _json_response({"tasks": [task.to_dict() for task in tasks]})

    @app.route("/api/nextdate", methods=_ALL_METHODS, provide_automatic_options=False)
    def nextdate_endpoint() -> Response:
        try:
            now = parse_date(_form_value("now"))
        except ValueError:
            return Response("Invalid now parameter\n", status=400, content_type="text/plain; charset=utf-8")
        try:
            result = next_date(now, _form_value("date"), _form_value("repeat"))
        except NextDateError as exc:
            return Response(f"{exc}\n", status=400, content_type="text/plain; charset=utf-8")
        return Response(result, content_type="text/plain")

    @app.route("/", defaults={"path": ""}, methods=["GET", "HEAD"])
    @app.route("/<path:path>", methods=["GET", "HEAD"])
    def static_files(path: str) -> Response:
        if not path or path.endswith("/") or (root / path).is_dir():
            path = posixpath.join(path, "index.html")
        return send_from_directory(root, path)

    return app


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the scheduler server; settings come from TODO_DBFILE and TODO_PORT."""
    parser = argparse.ArgumentParser(
        prog="taskplanner", description="Run the task scheduler web server."
    )
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    db_path = database_path()
    try:
        setup_database(db_path)
    except (OSError, sqlite3.Error) as exc:
        log.error("Error with database: %s", exc)
        return 1

    port = os.environ.get("TODO_PORT") or DEFAULT_PORT
    with TaskStore(db_path) as store:
        app = create_app(store, DEFAULT_WEB_DIR)
        log.info("Starting server on :%s", port)
        try:
            app.run(host="0.0.0.0", port=int(port))
        except (OSError, ValueError) as exc:
            log.error("Error starting server: %s", exc)
            return 1
    return 0