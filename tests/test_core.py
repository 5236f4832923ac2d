"""
Tests for configuration, video I/O, acceleration settings and the CLI.
"""

import json

import pytest
import numpy as np


class TestStabilizerConfig:
    """Tests for StabilizerConfig."""

    def test_defaults(self):
        """Test default values."""
        from livestab.core.config import StabilizerConfig

        config = StabilizerConfig()
        assert config.smoothing_radius == 14
        assert config.crop_proportion == 0.05
        assert config.test_mode is False
        assert config.tracker.motion_resolution == (2, 2)
        config.validate()

    @pytest.mark.parametrize("changes", [
        {"smoothing_radius": 3},
        {"smoothing_radius": 0},
        {"crop_proportion": 0.0},
        {"crop_proportion": 1.5},
    ])
    def test_invalid_values(self, changes):
        """Test out-of-range values are rejected."""
        from livestab.core.config import ConfigurationError, StabilizerConfig

        with pytest.raises(ConfigurationError):
            StabilizerConfig(**changes).validate()

    def test_configuration_error_is_value_error(self):
        """Test callers can catch ValueError."""
        from livestab.core.config import ConfigurationError

        assert issubclass(ConfigurationError, ValueError)

    def test_save_and_load(self, tmp_path):
        """Test a JSON file round trip."""
        from livestab.core.config import StabilizerConfig, TrackerConfig

        config = StabilizerConfig(
            smoothing_radius=20,
            crop_proportion=0.1,
            tracker=TrackerConfig(motion_resolution=(1, 1), min_motion_samples=50),
        )
        path = tmp_path / "stabilizer.json"
        config.save(path)
        loaded = StabilizerConfig.load(path)

        assert loaded == config
        assert json.loads(path.read_text())["tracker"]["motion_resolution"] == [1, 1]

    def test_load_missing(self, tmp_path):
        """Test loading a file that does not exist."""
        from livestab.core.config import load_config

        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.json")

    def test_load_invalid(self, tmp_path):
        """Test loading a file with bad values."""
        from livestab.core.config import ConfigurationError, load_config

        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"smoothing_radius": 7}))
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_from_dict_ignores_unknown_tracker_keys(self):
        """Test unknown tracker settings are dropped."""
        from livestab.core.config import StabilizerConfig

        config = StabilizerConfig.from_dict({
            "smoothing_radius": 8,
            "tracker": {"detection_grid": [16, 9], "no_such_setting": 1},
        })

        assert config.smoothing_radius == 8
        assert config.tracker.detection_grid == (16, 9)

    def test_copy(self):
        """Test copies do not share the tracker settings."""
        from livestab.core.config import StabilizerConfig

        config = StabilizerConfig()
        copy = config.copy(smoothing_radius=4)
        copy.tracker.min_motion_samples = 10

        assert copy.smoothing_radius == 4
        assert config.smoothing_radius == 14
        assert config.tracker.min_motion_samples == 100


class TestEnvironmentConfig:
    """Tests for environment variable overrides."""

    def test_get_env_config(self, monkeypatch):
        """Test prefixed variables are collected."""
        from livestab.core.config import get_env_config

        monkeypatch.setenv("LIVESTAB_SMOOTHING_RADIUS", "20")
        assert get_env_config()["smoothing_radius"] == "20"

    def test_apply_overrides(self, monkeypatch):
        """Test overrides replace file values."""
        from livestab.core.config import StabilizerConfig, apply_env_overrides

        monkeypatch.setenv("LIVESTAB_SMOOTHING_RADIUS", "20")
        monkeypatch.setenv("LIVESTAB_CROP_PROPORTION", "0.08")
        monkeypatch.setenv("LIVESTAB_TEST_MODE", "yes")
        config = apply_env_overrides(StabilizerConfig())

        assert config.smoothing_radius == 20
        assert config.crop_proportion == pytest.approx(0.08)
        assert config.test_mode is True

    @pytest.mark.parametrize("value", ["abc", "7"])
    def test_invalid_override(self, monkeypatch, value):
        """Test unparseable or invalid overrides raise."""
        from livestab.core.config import (
            ConfigurationError,
            StabilizerConfig,
            apply_env_overrides,
        )

        monkeypatch.setenv("LIVESTAB_SMOOTHING_RADIUS", value)
        with pytest.raises(ConfigurationError):
            apply_env_overrides(StabilizerConfig())


class TestVideoProperties:
    """Tests for VideoProperties."""

    def test_to_dict(self):
        """Test conversion to dict."""
        from livestab.core.video import VideoProperties

        props = VideoProperties(1920, 1080, 30, 100)
        d = props.to_dict()

        assert d['width'] == 1920
        assert d['height'] == 1080
        assert d['fps'] == 30
        assert d['frame_count'] == 100

    def test_resized(self):
        """Test copying with a new frame size."""
        from livestab.core.video import VideoProperties

        props = VideoProperties(1920, 1080, 25, 100).resized((1824, 1026))

        assert (props.width, props.height) == (1824, 1026)
        assert props.fps == 25
        assert props.frame_time_ms == pytest.approx(40.0)


class TestVideoIO:
    """Tests for VideoReader and VideoWriter."""

    def test_missing_file(self, tmp_path):
        """Test opening a file that does not exist."""
        from livestab.core.video import VideoReader

        with pytest.raises(FileNotFoundError):
            VideoReader(tmp_path / "missing.mp4").open()

    def test_write_and_read(self, tmp_path, scene):
        """Test frames written can be read back."""
        from livestab.core.video import VideoProperties, VideoReader, VideoWriter

        path = tmp_path / "clip.avi"
        props = VideoProperties(320, 240, 30.0, 0, fourcc="MJPG")
        with VideoWriter(path, props) as writer:
            for i in range(5):
                writer.write(scene(i, 0))
            assert writer.frames_written == 5

        with VideoReader(path) as reader:
            frames = [frame for _, frame in reader]
            assert reader.properties.width == 320

        assert len(frames) == 5
        assert frames[0].shape == (240, 320, 3)

    def test_writer_rejects_wrong_size(self, tmp_path):
        """Test frames must match the writer size."""
        from livestab.core.video import VideoProperties, VideoWriter

        props = VideoProperties(320, 240, 30.0, 0, fourcc="MJPG")
        with VideoWriter(tmp_path / "clip.avi", props) as writer:
            with pytest.raises(ValueError):
                writer.write(np.zeros((100, 100, 3), dtype=np.uint8))


class TestAccelerationConfig:
    """Tests for OpenCL acceleration settings."""

    def test_package_level_import(self):
        """Test acceleration settings available at package level."""
        import livestab
        assert hasattr(livestab, 'accel_config')
        assert hasattr(livestab, 'configure_acceleration')
        assert hasattr(livestab, 'print_acceleration_status')

    def test_disable_enable(self):
        """Test disabling and enabling OpenCL."""
        from livestab.core.hardware import accel_config

        original = accel_config.enabled

        accel_config.disable()
        assert accel_config.enabled is False
        assert accel_config.active is False

        accel_config.enable()
        assert accel_config.enabled is accel_config.available

        if not original:
            accel_config.disable()

    def test_configure_function(self):
        """Test configure_acceleration returns the shared instance."""
        from livestab.core.hardware import accel_config, configure_acceleration

        original = accel_config.enabled

        assert configure_acceleration(enabled=False) is accel_config
        assert accel_config.enabled is False

        configure_acceleration(enabled=original)

    def test_status_dict(self):
        """Test status() returns proper dict."""
        from livestab.core.hardware import accel_config

        status = accel_config.status()

        assert 'enabled' in status
        assert 'active' in status
        assert 'platform' in status
        assert 'opencl_available' in status
        assert 'opencv_version' in status

    def test_print_status(self, capsys):
        """Test the status report."""
        from livestab.core.hardware import print_acceleration_status

        print_acceleration_status()
        assert "OpenCL" in capsys.readouterr().out


class TestCommandLine:
    """Tests for the livestab CLI."""

    def test_config_create(self, tmp_path):
        """Test writing a default configuration file."""
        from livestab.__main__ import main
        from livestab.core.config import StabilizerConfig, load_config

        path = tmp_path / "stabilizer.json"
        assert main(['config', '--create', str(path)]) == 0
        assert load_config(path) == StabilizerConfig()

    def test_version(self, capsys):
        """Test the version command."""
        from livestab import __version__
        from livestab.__main__ import main

        assert main(['version']) == 0
        assert __version__ in capsys.readouterr().out

    def test_no_command(self, capsys):
        """Test running without a command prints help."""
        from livestab.__main__ import main

        assert main([]) == 0
        assert "stabilize" in capsys.readouterr().out

    def test_invalid_radius(self, tmp_path):
        """Test an odd radius is reported as a usage error."""
        from livestab.__main__ import main

        assert main(['stabilize', 'in.mp4', '-o', str(tmp_path / 'out.avi'), '-r', '3']) == 2

    def test_invalid_crop(self, tmp_path):
        """Test crop percentages outside 1-25 are rejected."""
        from livestab.__main__ import main

        assert main(['stabilize', 'in.mp4', '-o', str(tmp_path / 'out.avi'), '-c', '40']) == 2

    def test_missing_input(self, tmp_path):
        """Test a missing input file fails cleanly."""
        from livestab.__main__ import main

        assert main(['stabilize', str(tmp_path / 'missing.mp4'), '-o', str(tmp_path / 'out.avi')]) == 1

    def test_stabilize_and_analyze(self, tmp_path, scene, capsys):
        """Test end-to-end stabilization and analysis of a synthetic clip."""
        from livestab.__main__ import main
        from livestab.core.video import VideoProperties, VideoReader, VideoWriter

        source = tmp_path / "shaky.avi"
        offsets = np.random.default_rng(2).integers(-3, 4, (12, 2))
        with VideoWriter(source, VideoProperties(320, 240, 30.0, 0, fourcc="MJPG")) as writer:
            for dx, dy in offsets:
                writer.write(scene(int(dx), int(dy)))

        output = tmp_path / "stable.avi"
        assert main(['stabilize', str(source), '-o', str(output), '-r', '4', '-q']) == 0

        with VideoReader(output) as reader:
            frames = [frame for _, frame in reader]
        assert len(frames) == 12
        assert frames[0].shape == (228, 304, 3)

        preview = tmp_path / "preview.avi"
        assert main(['analyze', str(source), '--preview', str(preview)]) == 0
        assert "Frames tracked:    11" in capsys.readouterr().out
        assert preview.exists()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
