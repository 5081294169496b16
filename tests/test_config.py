"""
Configuration loading and engine wiring tests.
"""

import pytest

from lessonroom import ClassroomEngine, InvalidArgumentError, load_config
from lessonroom.classroom import ClassroomDatabase, SCHEMA_VERSION
from lessonroom.schemas import Principal, Role
from lessonroom.utils import EngineConfig, load_config_file


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No LESSONROOM_* variables, and any set while loading .env are undone."""
    for field in EngineConfig.model_fields:
        name = f"LESSONROOM_{field.upper()}"
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    return tmp_path / "missing.env"


class TestLoadConfig:

    def test_defaults(self, clean_env):
        config = load_config(env_file=clean_env)
        assert config.database_path == ":memory:"
        assert config.completion_threshold == 0.9
        assert config.pin_max_attempts == 10

    def test_yaml_file(self, clean_env, tmp_path):
        path = tmp_path / "lessonroom.yaml"
        path.write_text("completion_threshold: 0.75\npin_max_attempts: 3\n", encoding="utf-8")
        config = load_config(path, env_file=clean_env)
        assert config.completion_threshold == 0.75
        assert config.pin_max_attempts == 3

    def test_environment_wins_over_file(self, clean_env, tmp_path, monkeypatch):
        path = tmp_path / "lessonroom.yaml"
        path.write_text("completion_threshold: 0.75\n", encoding="utf-8")
        monkeypatch.setenv("LESSONROOM_COMPLETION_THRESHOLD", "0.8")
        assert load_config(path, env_file=clean_env).completion_threshold == 0.8

    def test_overrides_win(self, clean_env, monkeypatch):
        monkeypatch.setenv("LESSONROOM_PIN_MAX_ATTEMPTS", "4")
        assert load_config(env_file=clean_env, pin_max_attempts=2).pin_max_attempts == 2

    def test_dotenv_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("LESSONROOM_LOG_LEVEL=DEBUG\n", encoding="utf-8")
        assert load_config(env_file=env_file).log_level == "DEBUG"

    def test_dotenv_found_from_working_directory(self, clean_env, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("LESSONROOM_PIN_MAX_ATTEMPTS=7\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        assert load_config().pin_max_attempts == 7

    def test_log_level_normalized(self, clean_env, monkeypatch):
        monkeypatch.setenv("LESSONROOM_LOG_LEVEL", "warning")
        assert load_config(env_file=clean_env).log_level == "WARNING"

    def test_unknown_log_level(self, clean_env):
        with pytest.raises(InvalidArgumentError):
            load_config(env_file=clean_env, log_level="LOUD")

    def test_invalid_threshold(self, clean_env):
        with pytest.raises(InvalidArgumentError):
            load_config(env_file=clean_env, completion_threshold=1.5)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config_file(tmp_path / "nope.yaml")

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(InvalidArgumentError):
            load_config_file(path)


class TestEngine:

    def test_from_config(self, tmp_path):
        config = EngineConfig(database_path=str(tmp_path / "c.db"), completion_threshold=0.5)
        with ClassroomEngine.from_config(config) as engine:
            assert engine.config is config
            assert engine.progress.completion_threshold == 0.5
            assert engine.db.db_path == str(tmp_path / "c.db")

    def test_open_reads_file_and_overrides(self, clean_env, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "lessonroom.yaml"
        path.write_text(
            f"database_path: {tmp_path / 'opened.db'}\npin_max_attempts: 3\n", encoding="utf-8"
        )
        with ClassroomEngine.open(path, completion_threshold=0.8) as engine:
            assert engine.registry.pin_max_attempts == 3
            assert engine.progress.completion_threshold == 0.8
        assert (tmp_path / "opened.db").exists()

    def test_file_database_persists(self, tmp_path):
        db_path = tmp_path / "data" / "classroom.db"
        teacher = Principal(id="t1", role=Role.TEACHER)

        with ClassroomEngine(EngineConfig(database_path=str(db_path))) as engine:
            room = engine.registry.create_classroom(teacher, "Persistent")

        with ClassroomEngine(EngineConfig(database_path=str(db_path))) as engine:
            assert engine.registry.get_classroom(teacher, room.id).pin == room.pin

    def test_schema_version_recorded(self):
        db = ClassroomDatabase()
        assert db.get_metadata("schema_version") == SCHEMA_VERSION
        db.close()

    def test_failed_transaction_rolls_back(self, engine, teacher):
        with pytest.raises(RuntimeError):
            with engine.db.transaction() as conn:
                conn.execute(
                    """INSERT INTO classrooms (id, name, teacher_id, pin, created_at, updated_at)
                       VALUES ('c-x', 'Ghost', 't', '000000', 'now', 'now')"""
                )
                raise RuntimeError("boom")
        assert engine.registry.list_teacher_classrooms(teacher) == []
        assert engine.registry.active_pins() == set()
