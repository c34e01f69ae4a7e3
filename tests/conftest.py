import pytest
import sys
import textwrap
from pathlib import Path

# Ensure src/ is in the python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from uni.core.instance import Instance


@pytest.fixture
def uni_home(tmp_path):
    """
    Returns a temporary directory to act as the uni home (conf/ and run/ live here).
    """
    home = tmp_path / "uni-home"
    (home / "conf").mkdir(parents=True)
    return home


@pytest.fixture
def instance(uni_home, monkeypatch):
    """
    An instance named 'demo' whose PIDFILE is exported like the CLI does.
    """
    inst = Instance(name="demo", home=uni_home)
    monkeypatch.setenv("PIDFILE", str(inst.pid_file))
    monkeypatch.setenv("UNI_CONFIG_NAME", inst.name)
    return inst


@pytest.fixture
def write_server_config(instance, tmp_path):
    """
    Writes a gunicorn config file for the 'demo' instance.
    """
    def _write(
        workers: int = 4,
        preload_app: bool = False,
        bind: str = '"127.0.0.1:3000"',
        chdir: str | None = None,
        extra: str = "",
    ) -> Path:
        work_dir = chdir if chdir is not None else str(tmp_path)
        content = textwrap.dedent(
            f"""
            import os
            workers = {workers}
            preload_app = {preload_app}
            chdir = {work_dir!r}
            bind = {bind}
            pidfile = os.environ["PIDFILE"]
            """
        ) + extra
        instance.config_file.write_text(content)
        return instance.config_file

    return _write
