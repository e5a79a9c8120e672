# fang

A background task queue for Python. Tasks are plain Python objects that
describe their work. They are stored in an SQLite database, picked up by
worker threads, retried with backoff when they fail, and optionally
rescheduled on a cron pattern. The package has no dependencies outside the
standard library.

## Installing

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Defining a task

Subclass `Runnable` from `fang.runnable` and implement `run(queue)`. Every
concrete subclass is registered under its class name. Its public attributes
(or its fields, if it is a dataclass) form the task's metadata, which is
stored as JSON together with a `"type"` key holding the class name. A task
is rebuilt from its metadata by calling the class with those fields as
keyword arguments, so the constructor must accept them, and no field may be
called `type`.

```python
from fang.runnable import Runnable


class SendReport(Runnable):
    def __init__(self, number):
        self.number = number

    def run(self, queue):
        print(f"the number is {self.number}")

    def task_type(self):
        return "reports"
```

Methods you may override:

- `task_type()` – the type of worker that executes the task (default `"common"`).
- `uniq()` – when `True`, inserting a task whose metadata matches a pending
  (new or retried) task returns that task instead of adding another one.
- `cron()` – a `CronPattern` for a periodic task or a `ScheduleOnce` for a
  single run at a given moment (both from `fang.core`); default `None`.
- `max_retries()` – how many times a failing task is retried (default 20).
- `backoff(attempt)` – seconds to wait before the next attempt
  (default `2 ** attempt`).

A task fails when `run` raises. If it raises `FangError` (from
`fang.errors`), its description becomes the task's error message; any
other exception is recorded by its `repr`.

`Runnable.to_metadata()` and `fang.runnable.runnable_from_metadata()` turn
a task into its metadata and back.

## The queue

```python
from fang.queue import Queue

with Queue("tasks.db") as queue:
    task = queue.insert_task(SendReport(10))
    print(task.id, task.state)
```

`Queue(database)` opens (and if needed creates) the `fang_tasks` table in
the given SQLite file; the default is `":memory:"`. One connection is shared
by all threads and every operation runs in its own transaction. Call
`close()` (or leave the `with` block) when done; later operations raise
`PoolError`.

Operations, all returning `Task` objects or counts of removed rows:

- `insert_task(task)` – enqueue to run as soon as possible.
- `schedule_task(task)` – enqueue at the next moment of the task's
  `CronPattern`, or at its `ScheduleOnce` moment. Raises
  `TaskNotSchedulableError` if `cron()` returns `None` and
  `NoTimestampsError` if the pattern matches no future moment.
- `fetch_and_touch_task(task_type)` – take the earliest due new or retried
  task of that type and mark it in progress; `None` if there is none.
- `find_task_by_id(task_id)`, `update_task_state(task, state)`,
  `fail_task(task, error)`, `schedule_retry(task, backoff_seconds, error)`.
- `remove_task(task_id)`, `remove_tasks_of_type(task_type)`,
  `remove_all_tasks()`, `remove_all_scheduled_tasks()` (those scheduled in
  the future), and `remove_task_by_metadata(task)`, which raises
  `TaskNotUniqError` unless the task is `uniq()`.

`Queueable` is the abstract base class listing these operations.

A `Task` (from `fang.core`) is a frozen record with `id`, `metadata`,
`error_message`, `state`, `task_type`, `uniq_hash`, `retries`,
`scheduled_at`, `created_at` and `updated_at`. Its `state` is a
`FangTaskState`: `NEW`, `IN_PROGRESS`, `FAILED`, `FINISHED` or `RETRIED`.
All times are UTC.

## Cron schedules

```python
from fang.core import CronPattern
from fang.runnable import Runnable


class Heartbeat(Runnable):
    def run(self, queue):
        print("alive")

    def cron(self):
        return CronPattern("0/20 * * * * * *")


queue.schedule_task(Heartbeat())
```

Patterns have six or seven fields: seconds, minutes, hours, day of month,
month, day of week (1 = Sunday to 7 = Saturday, or names such as `Mon`)
and an optional year (1970–2100). Fields accept `*`, `?`, lists, ranges and
`/` steps; month names and the shortcuts `@yearly`, `@annually`,
`@monthly`, `@weekly`, `@daily`, `@midnight` and `@hourly` are understood.
`fang.cron.Schedule` parses a pattern and offers `includes(moment)`,
`upcoming(after)` and `next_after(after)`; it raises `CronParseError` for
bad patterns.

## Running workers

```python
from fang.core import RetentionMode, SleepParams
from fang.worker_pool import WorkerPool

with WorkerPool(
    queue,
    number_of_workers=3,
    sleep_params=SleepParams(),
    retention_mode=RetentionMode.KEEP_ALL,
    task_type="reports",
) as pool:
    ...
```

`start()` launches daemon threads named `worker_<task_type><n>`; `stop()`
signals them and waits for them to end. If a worker's loop ends with an
exception it is logged and the worker is started again, counting
`restarts` on its `WorkerThread`.

A `Worker` from `fang.worker` can also be driven directly:
`run(task)` executes one fetched task, `run_tasks(stop_event)` loops until
the event is set, and `run_tasks_until_none()` drains the due tasks and
returns how many ran. A failed task whose `retries` is below
`max_retries()` is rescheduled after `backoff(retries)` seconds; otherwise
it is finalised. After running a task with a `CronPattern`, the worker
schedules its next run.

An idle worker sleeps, lengthening the sleep by `sleep_step` up to
`max_sleep_period`, and drops back to `min_sleep_period` as soon as it
finds work. `SleepParams` defaults to 5 s, a 15 s maximum, a 5 s minimum
and a 5 s step.

Retention modes decide what happens to a task once it is done:

- `RetentionMode.KEEP_ALL` – keep every task, marked finished or failed.
- `RetentionMode.REMOVE_ALL` – delete every task (the default).
- `RetentionMode.REMOVE_FINISHED` – delete successful tasks, keep failed ones.

## Errors

`fang.errors` holds `FangError` for task failures and the `QueueError`
family: `DatabaseError`, `PoolError`, `TaskNotUniqError` and `CronError`
with its subclasses `CronParseError`, `TaskNotSchedulableError` and
`NoTimestampsError`. `fang_error_from(error)` wraps any exception in a
`FangError`.

## What it does not do

Storage is SQLite only; there is no PostgreSQL or MySQL backend and no
asynchronous queue or workers. The table is created automatically and
there is no separate migration step. The package is a library and installs
no command-line program.