# taskplanner

A small task scheduler served over HTTP. Tasks are kept in a SQLite database
and can repeat every N days or every year. The server also serves static
front-end files from a web directory next to its JSON API.

## Installation

```
pip install .
```

## Running the server

```
taskplanner
```

The command takes no options. It reads two environment variables:

- `TODO_PORT`: the port to listen on (default `7540`). The server listens
  on all interfaces.
- `TODO_DBFILE`: the path of the SQLite database file (default
  `scheduler.db` in the current working directory). If the file does not
  exist, it is created together with the `scheduler` table and its date
  index.

Static files are served from `./web`, relative to the working directory. A
request for a directory serves its `index.html`.

The server runs on Flask's built-in server.

## HTTP API

| Method | Path                  | Purpose                                                         |
|--------|-----------------------|-----------------------------------------------------------------|
| any    | `/api/nextdate`       | Next date for the `now`, `date` and `repeat` parameters          |
| POST   | `/api/task`           | Add a task from a JSON body; returns `{"id": "..."}`             |
| GET    | `/api/task?id=N`      | Fetch a task as JSON                                            |
| PUT    | `/api/task`           | Update a task from a JSON body that includes `id`               |
| DELETE | `/api/task?id=N`      | Delete a task                                                   |
| any    | `/api/task/done?id=N` | Mark a task done: one-off tasks are deleted, repeating tasks move to their next date |
| any    | `/api/tasks`          | List tasks ordered by date (`limit`, default 50)                |

A task is a JSON object with the string fields `id`, `date`, `title`,
`comment` and `repeat`. Dates use the `YYYYMMDD` format.

- Adding a task: an empty date means today. A date of today or earlier is
  moved to today for a one-off task, or to the next date after today by its
  repeat rule. A title is required.
- Updating a task: `id` and `title` are required; an empty date means today.
- Other methods on `/api/task` get status 405.

The task endpoints answer errors with status 400 and a JSON body
`{"error": "..."}`. `/api/nextdate` answers with the date as plain text,
or with status 400 and a plain-text message.

### Repeat rules

- `d N`: every N days, with 1 ≤ N ≤ 400.
- `y`: every year; 29 February moves to 1 March in years without it.

The next date is always the first one strictly after `now`.

## Using it from Python

```python
from datetime import date
from taskplanner.nextdate import next_date
from taskplanner.storage import TaskStore, setup_database

print(next_date(date(2024, 1, 26), "20240113", "d 7"))  # 20240127

setup_database("scheduler.db")
with TaskStore("scheduler.db") as store:
    task_id = store.add_task("20240201", "Call the office", "", "d 7")
    print(store.get_task(task_id).to_dict())
```

- `taskplanner.nextdate`: `parse_date`, `format_date`, `normalize_date`,
  `next_date` and `NextDateError`.
- `taskplanner.models.Task`: a dataclass with `to_dict()` and
  `Task.from_mapping(data)`.
- `taskplanner.storage`: `database_path()`, `setup_database(path)` and
  `TaskStore` with `add_task`, `get_task` (raises `TaskNotFoundError`),
  `update_task`, `delete_task` and `list_tasks`.
- `taskplanner.app.create_app(store, web_dir)` builds the Flask application
  if you want to host it yourself. `taskplanner.app.main()` is what the
  `taskplanner` command runs.

## What it does not do

- Repeat rules are limited to `d N` and `y`. Weekly (`w`) and monthly (`m`)
  rules are rejected.
- `/api/tasks` has no search; it returns tasks in date order up to the limit.
- There is no authentication.

## Tests

```
pip install .[test]
pytest
```