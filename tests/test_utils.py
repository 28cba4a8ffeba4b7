from __future__ import annotations

import sys
import threading

from logo_palette.utils import ThreadRoutedStdout, log, routed_stdout


def test_routed_stdout_keeps_threads_apart(capsys):
    captured = {}

    def worker(name, router):
        with router.capture() as buf:
            log(f"hello from {name}")
        captured[name] = buf.getvalue()

    with routed_stdout() as router:
        threads = [threading.Thread(target=worker, args=(n, router)) for n in "abc"]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        log("main thread")

    assert not isinstance(sys.stdout, ThreadRoutedStdout)
    assert captured == {n: f"hello from {n}\n" for n in "abc"}
    assert capsys.readouterr().out == "main thread\n"
