"""
Trigger capture detector.

Opens the video stream, loads the detection model and polls the stream for
the subject and trigger classes, capturing one still frame per session when
the trigger object is recognized.

Usage:
    python src/main.py --config config/config.yaml

Arguments:
    --config: Path to configuration file
    --synthetic: Use the synthetic test-pattern source instead of a camera
    --web: Serve the status/control API (overrides web.enabled)
    --log-level: Override log_level from the config
"""

import os
import sys
import argparse
import asyncio
import logging
import signal
from typing import Dict, Any, Tuple, Optional

import uvicorn
import yaml

from capture.encoder import MEDIA_TYPES
from models.config import Config
from models.detection import ClassLabel
from ops.logging import setup_logging
from runtime.session import build_session_from_config
from web.app import create_app

CAMERA_BACKENDS = ('opencv', 'synthetic')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        config_dir = os.path.dirname(config_path)
        base_path = os.path.join(config_dir, "default.yaml")
        merged: Dict[str, Any] = _read_yaml(base_path) if os.path.exists(base_path) else {}

        local_overrides_path = os.path.join(config_dir, "config.yaml")
        if os.path.exists(local_overrides_path):
            merged = _deep_merge(merged, _read_yaml(local_overrides_path))

        # Finally apply explicit config_path if it's not one of the files above
        explicit = os.path.abspath(config_path)
        if os.path.exists(config_path) and explicit not in (
            os.path.abspath(local_overrides_path),
            os.path.abspath(base_path),
        ):
            merged = _deep_merge(merged, _read_yaml(config_path))

        return merged
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'model', 'detection', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Camera
    camera = config.get('camera') or {}
    backend = camera.get('backend', 'opencv')
    if backend not in CAMERA_BACKENDS:
        return False, f"camera.backend must be one of: {', '.join(CAMERA_BACKENDS)}"
    device_id = camera.get('device_id', 0)
    if not isinstance(device_id, (int, str)) or isinstance(device_id, bool):
        return False, "camera.device_id must be an integer (index) or string (URL/path)"
    if isinstance(device_id, int) and device_id < 0:
        return False, "camera.device_id integer must be non-negative"
    resolution = camera.get('resolution', [640, 480])
    if not isinstance(resolution, list) or len(resolution) != 2:
        return False, "camera.resolution must be a list of [width, height]"
    if not all(isinstance(x, int) and x > 0 for x in resolution):
        return False, "camera.resolution values must be positive integers"
    fps = camera.get('fps', 30)
    if not isinstance(fps, int) or fps <= 0:
        return False, "camera.fps must be a positive integer"

    # Model
    model = config.get('model') or {}
    if not isinstance(model.get('path'), str) or not model.get('path'):
        return False, "model.path must be a non-empty string"
    providers = model.get('providers', ['CPUExecutionProvider'])
    if not isinstance(providers, list) or not providers or not all(isinstance(p, str) for p in providers):
        return False, "model.providers must be a non-empty list of provider names"

    # Detection
    detection = config.get('detection') or {}
    input_size = detection.get('input_size', 640)
    if not isinstance(input_size, int) or input_size <= 0:
        return False, "detection.input_size must be a positive integer"
    for key in ('conf_threshold', 'iou_threshold'):
        value = detection.get(key, 0.5)
        if not _is_number(value) or not 0.0 <= value <= 1.0:
            return False, f"detection.{key} must be between 0 and 1"
    interval_ms = detection.get('interval_ms', 500)
    if not isinstance(interval_ms, int) or interval_ms <= 0:
        return False, "detection.interval_ms must be a positive integer"
    classes = detection.get('classes')
    if classes is not None:
        if not isinstance(classes, dict) or not classes:
            return False, "detection.classes must be a mapping of class index to label"
        labels = {label.value for label in ClassLabel}
        for index, label in classes.items():
            try:
                idx = int(index)
            except (TypeError, ValueError):
                return False, f"detection.classes key {index!r} is not a class index"
            if idx < 0:
                return False, "detection.classes indices must be non-negative"
            if label not in labels:
                return False, f"detection.classes label must be one of: {', '.join(sorted(labels))}"
        if ClassLabel.TRIGGER.value not in classes.values():
            return False, "detection.classes must include a trigger class"

    # Capture
    capture = config.get('capture') or {}
    alert_seconds = capture.get('alert_seconds', 5.0)
    if not _is_number(alert_seconds) or alert_seconds < 0:
        return False, "capture.alert_seconds must be a non-negative number"
    if str(capture.get('image_format', 'png')).lower() not in MEDIA_TYPES:
        return False, f"capture.image_format must be one of: {', '.join(MEDIA_TYPES)}"

    # Web
    web = config.get('web') or {}
    port = web.get('port', 8000)
    if not isinstance(port, int) or not 0 < port < 65536:
        return False, "web.port must be a valid TCP port"

    if str(config['log_level']).upper() not in LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(LOG_LEVELS)}"

    return True, None


async def _wait_for_stop() -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows: Ctrl+C still raises KeyboardInterrupt in asyncio.run
            logging.debug(f"Signal handler for {sig.name} not supported on this platform")
    await stop.wait()


async def run(cfg: Config, synthetic: bool = False) -> None:
    """Run one detection session until interrupted."""
    session = build_session_from_config(cfg, synthetic=synthetic)
    try:
        await session.startup()
        if cfg.web.enabled:
            server = uvicorn.Server(
                uvicorn.Config(
                    create_app(session),
                    host=cfg.web.host,
                    port=cfg.web.port,
                    log_level=cfg.log_level.lower(),
                    log_config=None,
                )
            )
            logging.info(f"Web interface started on {cfg.web.host}:{cfg.web.port}")
            await server.serve()
        else:
            await _wait_for_stop()
    finally:
        await session.shutdown()


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Trigger capture detector')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--synthetic', action='store_true',
                        help='Use the synthetic test-pattern source')
    parser.add_argument('--web', action='store_true',
                        help='Serve the status/control API')
    parser.add_argument('--log-level', type=str, default=None,
                        help='Override log_level from the config')
    args = parser.parse_args()

    config = load_config(args.config)
    if args.log_level:
        config['log_level'] = args.log_level.upper()
    if args.web:
        config.setdefault('web', {})['enabled'] = True

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], str(config['log_level']).upper())
    cfg = Config.from_dict(config)

    classes = {k: v.value for k, v in cfg.detection.classes.items()}
    logging.info(f"Starting trigger capture detector (classes={classes})")
    try:
        asyncio.run(run(cfg, synthetic=args.synthetic))
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    finally:
        logging.info("Trigger capture detector stopped")


if __name__ == "__main__":
    main()
