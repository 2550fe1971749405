"""
Video anomaly detector.

Plays a video (file, webcam or stream), samples frames through the object
recognizer and logs anomaly alerts.

Usage:
    python src/main.py --config config/config.yaml --video samples/plaza.mp4

Arguments:
    --config: Path to configuration file
    --video: Video file, camera index or stream URL (overrides video.device_id)
    --frame-skip: Ticks skipped between analyzed frames (overrides scheduler.frame_skip)
    --backend: Recognition backend, 'yolo' or 'mock'
    --max-seconds: Stop after this many seconds
"""

import argparse
import asyncio
import logging
import os
import sys
import time
from typing import Any, Dict, List, Optional, Tuple

import yaml

from models.anomaly import AnomalyResult
from models.config import Config
from models.detection import Detection
from models.errors import ModelLoadError
from observation import create_source_from_config
from ops.logging import setup_logging
from pipeline import create_pipeline_from_config


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


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
        local_overrides_path = os.path.join(config_dir, "config.yaml")

        merged: Dict[str, Any] = {}
        for path in (base_path, local_overrides_path):
            if os.path.exists(path):
                with open(path, "r") as f:
                    merged = _deep_merge(merged, yaml.safe_load(f) or {})

        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                merged = _deep_merge(merged, yaml.safe_load(f) or {})

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration structure and values.

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['video', 'recognition', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    video = config.get('video') or {}
    if 'device_id' not in video:
        return False, "Missing video.device_id"
    if not isinstance(video['device_id'], (int, str)) or isinstance(video['device_id'], bool):
        return False, "video.device_id must be an integer (index) or string (path/URL)"
    if isinstance(video['device_id'], int) and video['device_id'] < 0:
        return False, "video.device_id integer must be non-negative"

    recognition = config.get('recognition') or {}
    backend = recognition.get('backend', 'yolo')
    if backend not in ('yolo', 'mock'):
        return False, "recognition.backend must be one of: yolo, mock"
    if backend == 'yolo' and not recognition.get('model'):
        return False, "recognition.model is required when recognition.backend is 'yolo'"
    if 'score_threshold' in recognition:
        st = recognition['score_threshold']
        if not _is_number(st) or not (0 <= st <= 1):
            return False, "recognition.score_threshold must be between 0 and 1"
    if 'max_boxes' in recognition:
        mb = recognition['max_boxes']
        if not isinstance(mb, int) or mb <= 0:
            return False, "recognition.max_boxes must be a positive integer"
    mapping = recognition.get('class_mapping')
    if mapping is not None and not isinstance(mapping, dict):
        return False, "recognition.class_mapping must be a mapping of label -> label"

    scheduler = config.get('scheduler') or {}
    if 'frame_skip' in scheduler:
        if not isinstance(scheduler['frame_skip'], int):
            return False, "scheduler.frame_skip must be an integer"
    if 'tick_interval' in scheduler:
        ti = scheduler['tick_interval']
        if not _is_number(ti) or ti <= 0:
            return False, "scheduler.tick_interval must be a positive number"

    anomaly = config.get('anomaly') or {}
    if 'history_window' in anomaly:
        hw = anomaly['history_window']
        if not _is_number(hw) or hw <= 0:
            return False, "anomaly.history_window must be a positive number of seconds"
    for key in ('interaction_score', 'alert_threshold'):
        if key in anomaly:
            value = anomaly[key]
            if not _is_number(value) or not (0 <= value <= 1):
                return False, f"anomaly.{key} must be between 0 and 1"
    rules = anomaly.get('rules')
    if rules is not None:
        if not isinstance(rules, dict):
            return False, "anomaly.rules must be a mapping of class -> rule"
        for name, rule in rules.items():
            if not isinstance(rule, dict) or 'policy' not in rule:
                return False, f"anomaly.rules.{name} must define a policy"

    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def _parse_device(value: str):
    return int(value) if value.isdigit() else value


async def run(config: Config, max_seconds: Optional[float] = None) -> int:
    """Run the pipeline until the video ends, the time limit passes, or Ctrl+C."""
    pipeline = create_pipeline_from_config(config)
    source = create_source_from_config(config.video, source_id="main-video")
    alert_threshold = config.anomaly.alert_threshold
    alerts: List[AnomalyResult] = []

    def on_result(detections: List[Detection], result: AnomalyResult) -> None:
        view = result.above_threshold(alert_threshold)
        if view.has_anomaly and (not alerts or alerts[-1] is not result):
            alerts.append(result)
            objects = ", ".join(sorted({a.object for a in view.anomalies})) or "-"
            interactions = sum(1 for a in view.anomalies if a.is_interaction)
            logging.warning(
                f"ALERT: score={result.anomaly_score:.2f} "
                f"detections={len(detections)} interactions={interactions} objects={objects}"
            )
            logging.debug(
                f"Alert detail: detections={[d.to_dict() for d in detections]} "
                f"result={view.to_dict()}"
            )

    def on_error(error: Exception) -> None:
        logging.warning(f"Frame skipped: {error}")

    try:
        await pipeline.load_model()
    except ModelLoadError as e:
        logging.error(f"Could not start detection: {e}")
        return 1

    try:
        await asyncio.to_thread(source.open)
    except RuntimeError as e:
        logging.error(str(e))
        await pipeline.shutdown()
        return 1

    started = time.time()
    try:
        loop_task = pipeline.detect_objects_on_video(source, on_result, on_error)
        while loop_task is not None and not loop_task.done():
            if source.ended:
                logging.info("Video finished")
                break
            if max_seconds is not None and time.time() - started >= max_seconds:
                logging.info(f"Time limit of {max_seconds}s reached")
                break
            await asyncio.sleep(0.25)
    finally:
        await pipeline.shutdown()
        source.close()

    scheduler = pipeline.scheduler
    if scheduler is not None:
        logging.info(
            f"Processed ticks={scheduler.stats.ticks}, detections={scheduler.stats.detections}, "
            f"errors={scheduler.stats.errors}, alerts={len(alerts)}"
        )
    return 0


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Video anomaly detector')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--video', type=str, default=None,
                        help='Video file, camera index or stream URL')
    parser.add_argument('--frame-skip', type=int, default=None,
                        help='Ticks skipped between analyzed frames')
    parser.add_argument('--backend', choices=['yolo', 'mock'], default=None,
                        help='Recognition backend')
    parser.add_argument('--max-seconds', type=float, default=None,
                        help='Stop after this many seconds')
    args = parser.parse_args()

    raw = load_config(args.config)
    if args.video is not None:
        raw.setdefault('video', {})['device_id'] = _parse_device(args.video)
    if args.backend is not None:
        raw.setdefault('recognition', {})['backend'] = args.backend
    if args.frame_skip is not None:
        raw.setdefault('scheduler', {})['frame_skip'] = args.frame_skip

    is_valid, error_msg = validate_config(raw)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    config = Config.from_dict(raw)
    setup_logging(config.log_path, config.log_level)
    logging.info("Starting video anomaly detector")
    logging.debug(f"Effective config: {config.to_dict()}")

    try:
        exit_code = asyncio.run(run(config, max_seconds=args.max_seconds))
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
