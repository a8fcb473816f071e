"""Shared fixtures for the corpus coverage tests."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from config.run_config import RunConfig
from execution import batch_runner

HARNESS_CLASSPATH = '/opt/junit/junit-4.12.jar:/opt/junit/hamcrest-core-1.3.jar'


def destfile_of(command: list[str]) -> Path:
    """The trace file named in the coverage agent option of a JVM command."""
    for arg in command:
        if arg.startswith('-javaagent:') and 'destfile=' in arg:
            return Path(arg.split('destfile=', 1)[1].split(',excludes=', 1)[0])
    raise AssertionError(f'No coverage agent in {command}')


class FakeJvm:
    """Stands in for subprocess.run, writing a planned trace where the agent would."""

    def __init__(self):
        self.plans: dict[str, tuple[int, str, bytes | None]] = {}
        self.calls: list[tuple[list[str], dict]] = []
        self.working_dirs: list[Path] = []
        self.working_dir_existed: list[bool] = []

    def plan(self, batch_name: str, returncode: int = 0, stdout: str = '', trace: bytes | None = None) -> None:
        self.plans[batch_name] = (returncode, stdout, trace)

    def _batch_name(self, command: list[str]) -> str:
        entries = command[command.index('-classpath') + 1].split(':')
        for entry in entries:
            if Path(entry).name in self.plans:
                return Path(entry).name
        return ''

    def __call__(self, command, **kwargs):
        self.calls.append((command, kwargs))
        cwd = Path(kwargs['cwd'])
        self.working_dirs.append(cwd)
        self.working_dir_existed.append(cwd.is_dir())
        returncode, stdout, trace = self.plans.get(self._batch_name(command), (0, '', None))
        if trace is not None:
            with open(destfile_of(command), 'ab') as f:
                f.write(trace)
        return subprocess.CompletedProcess(command, returncode, stdout=stdout)


@pytest.fixture
def fake_jvm(monkeypatch) -> FakeJvm:
    jvm = FakeJvm()
    monkeypatch.setattr(batch_runner.subprocess, 'run', jvm)
    return jvm


@pytest.fixture
def config(tmp_path) -> RunConfig:
    agents = tmp_path / 'agents'
    agents.mkdir()
    (agents / 'jacocoagent.jar').write_bytes(b'')
    (agents / 'replacecall.jar').write_bytes(b'')
    (tmp_path / 'corpus').mkdir()
    return RunConfig(
        corpus_dir=tmp_path / 'corpus',
        coverage_agent=agents / 'jacocoagent.jar',
        harness_classpath=HARNESS_CLASSPATH,
        output_dir=tmp_path / 'out',
        safety_agent=agents / 'replacecall.jar',
    )


def make_batch(project_dir: Path, name: str, with_class: bool = True) -> Path:
    batch = project_dir / 'build' / 'classes' / name
    batch.mkdir(parents=True)
    if with_class:
        (batch / 'RegressionTestDriver.class').write_bytes(b'\xca\xfe\xba\xbe')
    return batch


def make_project(corpus: Path, name: str, class_dir: Path | None = None,
                 classpath: str | None = '/corpus/lib/dep.jar', batches: tuple[str, ...] = ()) -> Path:
    """Lay out a corpus project: descriptor, resources and compiled test batches."""
    project = corpus / name
    project.mkdir(parents=True)
    (project / 'build.gradle').write_text('apply plugin: "java"\n')
    resources = project / 'resources'
    resources.mkdir()
    if classpath is not None:
        (resources / 'classpath.txt').write_text(f'{classpath}\n')
    if class_dir is not None:
        (resources / 'classdir.txt').write_text(f'{class_dir}\n')
    for batch in batches:
        make_batch(project, batch)
    return project
