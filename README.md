# dlqueue

A terminal download manager. Downloads are grouped into named queues; each
queue has its own target directory, number of parallel downloads, retry count,
speed limit (bytes per second, `0` for none) and a daily active window (start
and end time, `HH:MM`; a window whose end is before its start wraps past
midnight). The manager checks the windows once a minute: a queue whose window
opens is started and handed its pending downloads, a queue whose window closes
is stopped and its running downloads are set back to pending.

Servers that announce `Accept-Ranges` are fetched in five byte-range parts at
once, each written to its own `.part` file; when all parts are done they are
merged into the final file and the part files are deleted. Other servers are
fetched in a single part. Downloads can be paused, resumed, retried after
failure and removed (removing deletes any part files already written).

## Installing

```
pip install .
```

## Running

```
dlqueue [--state FILE] [--log FILE]
```

- `--state` – the JSON state file, by default
  `internal/persistence/data.json` relative to the working directory. It is
  read at start (a missing file gives an empty manager), written right after
  loading, every 30 seconds while running, and on exit. Write failures are
  logged, not shown.
- `--log` – the log file, appended to, by default `internal/logger/logfile`.
  If it cannot be opened, the program runs without a log file.

The interface has three tabs; move between them with the left and right arrow
keys:

- **Add Download** – enter a URL, an optional output file name (the last part
  of the URL is used otherwise) and pick a destination queue (`enter` opens
  the list of queues, `enter` picks one, `esc`/`q` closes the list).
- **Downloads List** – shows each download with its queue, status, transfer
  rate and progress. Keys: `p` pauses a running download or resumes a paused
  one, `r` retries a failed download, `d` deletes the selected download.
- **Queues List** – shows every queue. Keys: `n` new queue, `e` edit the
  selected queue, `d` delete it (its downloads are cancelled and removed too),
  `q` quits. In the add and edit forms `esc` or `ctrl+c` closes the form.

Elsewhere `esc` or `ctrl+c` quits; queues are stopped and the state is saved.

## Using it as a library

```python
import datetime as dt

from dlqueue.manager import Manager, QueueInfo
from dlqueue.storage import load, save

manager = load("data.json")
manager.add_queue(QueueInfo(
    name="night",
    target_directory="/tmp",
    max_parallel=2,
    num_retries=1,
    start_time=dt.time(1, 0),
    end_time=dt.time(6, 0),
))
manager.add_download("https://example.com/file.iso", "", "night")
for info in manager.download_list():
    print(info.id, info.url, info.status.name, f"{info.progress:.1f}%")

manager.check_time_and_activate()   # start or stop queues for the current time
save("data.json", manager.to_json())
```

- `dlqueue.manager.Manager` keeps the queues and downloads: `add_queue`,
  `update_queue`, `remove_queue`, `queue_list`, `add_download`,
  `pause_download`, `resume_download`, `remove_download`, `download_list`,
  `start`/`stop` for the once-a-minute window check, and
  `to_json`/`from_json`. Bad requests raise `ManagerError`.
- `dlqueue.storage.load` and `save` read and write the state file.
- `dlqueue.download.Download`, `dlqueue.part.Part`, `dlqueue.queue.Queue` and
  `dlqueue.limiter.BandwidthLimiter` are the pieces underneath;
  `dlqueue.status.Status` lists the states of a download.

## Limitations

- The add and edit queue forms have no field for the retry count; queues
  made there retry nothing. Set `num_retries` through the library instead.
- Only plain HTTP(S) downloads without authentication are supported.
- A download needs a server that reports its `Content-Length`.

## Tests

```
pip install .[test]
pytest
```