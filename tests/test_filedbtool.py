import runpy
import sys
from pathlib import Path

import pytest


SCRIPT = str(Path(__file__).parent.parent / 'scripts' / 'filedbtool.py')


def _run(monkeypatch, *args):
    monkeypatch.setattr(sys, 'argv', [SCRIPT] + list(args))

    with pytest.raises(SystemExit) as excinfo:
        runpy.run_path(SCRIPT, run_name='__main__')

    return excinfo.value.code


def test_usage(monkeypatch):
    assert _run(monkeypatch, 'dump') == 1
    assert _run(monkeypatch, 'gen', 'a.db') == 1


def test_missing_source_fails_cleanly(monkeypatch, tmp_path):
    output = tmp_path / 'file.db'

    assert _run(monkeypatch, 'gen', '-o', str(output), str(tmp_path / 'missing.db')) == 2
    assert not output.exists()

    assert _run(monkeypatch, 'dump', str(tmp_path / 'missing.db')) == 2


def test_malformed_file_db_fails_cleanly(monkeypatch, tmp_path):
    path = tmp_path / 'file.db'
    path.write_bytes(b'\x01\x00\x02\x80\x02\x00\x00\x00\xff\xfe\x00\x00')

    assert _run(monkeypatch, 'dump', str(path)) == 2
