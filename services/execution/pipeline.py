"""
Explicit process pipelines for the external MySQL utilities.

A ``TwoStagePipeline`` runs producer | consumer as two concurrent processes
and checks the exit status of each stage on its own, which a shell pipe
would not do. Stderr of each stage is spooled to a temporary file so a
chatty stage can never block the other.
"""

import signal
import subprocess
import tempfile
from dataclasses import dataclass, field
from typing import IO, Mapping, Optional, Sequence

from errors import ProcessFailure, UtilityNotFoundError

STDERR_TAIL_BYTES = 4096


@dataclass(frozen=True)
class Command:
    name: str
    argv: Sequence[str]
    env: Optional[Mapping[str, str]] = field(default=None, compare=False, repr=False)

    def display(self) -> str:
        return " ".join(self.argv)


def _read_tail(handle) -> str:
    handle.seek(0, 2)
    size = handle.tell()
    handle.seek(max(0, size - STDERR_TAIL_BYTES))
    return handle.read().decode("utf-8", errors="replace")


def _spawn(command: Command, **kwargs) -> subprocess.Popen:
    try:
        return subprocess.Popen(list(command.argv), env=dict(command.env) if command.env else None, **kwargs)
    except FileNotFoundError:
        raise UtilityNotFoundError(f"{command.argv[0]} utility not found in PATH. Please install it.") from None


def run_command(command: Command, stdout: Optional[IO] = None) -> None:
    """Run a single process, raising ProcessFailure on a non-zero exit."""
    with tempfile.TemporaryFile() as stderr:
        process = _spawn(command, stdout=stdout if stdout is not None else subprocess.DEVNULL, stderr=stderr)
        returncode = process.wait()
        if returncode != 0:
            raise ProcessFailure(command.name, returncode, _read_tail(stderr))


class TwoStagePipeline:
    def __init__(self, producer: Command, consumer: Command):
        self.producer = producer
        self.consumer = consumer

    def run(self, stdout: Optional[IO] = None) -> None:
        """
        Run producer | consumer to completion.

        The consumer's stdout goes to ``stdout`` (discarded when None). The
        producer is checked first: when it fails, the consumer's result is
        meaningless because its input was truncated.
        """
        with tempfile.TemporaryFile() as producer_err, tempfile.TemporaryFile() as consumer_err:
            producer = _spawn(self.producer, stdout=subprocess.PIPE, stderr=producer_err)
            try:
                consumer = _spawn(
                    self.consumer,
                    stdin=producer.stdout,
                    stdout=stdout if stdout is not None else subprocess.DEVNULL,
                    stderr=consumer_err,
                )
            except UtilityNotFoundError:
                producer.kill()
                producer.wait()
                raise
            finally:
                # only the consumer holds the read end now
                producer.stdout.close()

            consumer_rc = consumer.wait()
            killed = False
            if consumer_rc != 0 and producer.poll() is None:
                producer.kill()
                killed = True
            producer_rc = producer.wait()

            # a producer cut off by a dying consumer is not the root cause
            broken_pipe = consumer_rc != 0 and producer_rc == -signal.SIGPIPE
            if producer_rc != 0 and not killed and not broken_pipe:
                raise ProcessFailure(self.producer.name, producer_rc, _read_tail(producer_err))
            if consumer_rc != 0:
                raise ProcessFailure(self.consumer.name, consumer_rc, _read_tail(consumer_err))
