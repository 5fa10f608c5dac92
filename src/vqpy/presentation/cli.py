"""
Command line entry point: ``vqpy run`` and ``vqpy explain``.
"""
import argparse
import importlib
import importlib.util
import logging
import sys
from pathlib import Path
from typing import List, Optional, Type

from ..common.config import ConfigManager
from ..common.exceptions import QueryDefinitionError, VQPyError
from ..common.logging import setup_logger
from ..domain import Query

logger = logging.getLogger("vqpy.cli")


def load_query_class(path: str) -> Type[Query]:
    """
    Loads ``package.module:QueryClass`` or ``path/to/file.py:QueryClass``.
    """
    module_path, sep, class_name = path.partition(':')
    if not sep or not class_name:
        raise QueryDefinitionError(f"Expected 'module:QueryClass', got {path!r}")

    if module_path.endswith('.py'):
        file_path = Path(module_path)
        if not file_path.exists():
            raise QueryDefinitionError(f"Query file not found: {file_path}")
        spec = importlib.util.spec_from_file_location(file_path.stem, file_path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
    else:
        module = importlib.import_module(module_path)

    query_cls = getattr(module, class_name, None)
    if not isinstance(query_cls, type) or not issubclass(query_cls, Query):
        raise QueryDefinitionError(f"{path!r} is not a Query subclass")
    return query_cls


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vqpy", description="VQPy - video query compiler and runtime")
    parser.add_argument('--config-dir', default='conf', help="Directory holding query/<profile>.yaml")
    parser.add_argument('--profile', default='default', help="Configuration profile")
    parser.add_argument('-v', '--verbose', action='store_true', help="Debug logging")
    commands = parser.add_subparsers(dest='command', required=True)

    run = commands.add_parser('run', help="Run a query over a video source")
    run.add_argument('query', help="module:QueryClass or file.py:QueryClass")
    run.add_argument('--source', help="Video file, image directory, stream URL or webcam index")
    run.add_argument('--display', action='store_true', help="Show frames with matches highlighted")

    explain = commands.add_parser('explain', help="Compile a query and print its execution plan")
    explain.add_argument('query', help="module:QueryClass or file.py:QueryClass")
    return parser


def _run(builder, query_cls: Type[Query], display: bool) -> int:
    # Imported here so `vqpy explain` works without a display stack
    import cv2
    from .visualization.opencv_visualizer import OpenCVVisualizer

    pipeline = (
        builder
        .build_history()
        .build_persistence()
        .build_source()
        .build_pipeline(query_cls)
    )
    visualizer = OpenCVVisualizer() if display else None

    try:
        for frame, result in pipeline.run():
            if visualizer is not None:
                image = visualizer.draw(frame.image, result)
                cv2.imshow("VQPy", image)
                if cv2.waitKey(1) & 0xFF == ord('q'):
                    break
            elif result.matched:
                logger.info(f"Frame {frame.id} ({frame.timestamp:.2f}s): {len(result.matches)} matches")
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
    finally:
        pipeline.stop()
        if builder.repository is not None:
            builder.repository.close()
        if visualizer is not None:
            cv2.destroyAllWindows()

    output = builder.compiled_query.finish()
    size = len(output) if hasattr(output, '__len__') else None
    logger.info(f"Video output: {size if size is not None else output}" + (" matched frames" if size is not None else ""))
    logger.info(f"Metrics: {builder.metrics_collector.get_metrics().to_dict()}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point. Unknown ``key=value`` arguments are applied as
    configuration overrides, e.g. ``query.pipeline.mode=async``.
    """
    parser = _build_parser()
    args, unknown = parser.parse_known_args(argv)

    setup_logger("vqpy", logging.DEBUG if args.verbose else logging.INFO)

    overrides = list(unknown)
    if getattr(args, 'source', None):
        overrides.append(f"query.source={args.source}")

    # Builder pulls in the model stack (ultralytics, supervision)
    from ..application.builder import QueryApplicationBuilder

    try:
        cfg = ConfigManager(Path(args.config_dir)).load_query_config(args.profile, overrides)
        query_cls = load_query_class(args.query)
        builder = QueryApplicationBuilder(cfg).build_models()

        if args.command == 'explain':
            compiled = builder.build_history().build_query(query_cls)
            print(compiled.explain())
            return 0

        return _run(builder, query_cls, args.display or cfg.query.display)
    except (VQPyError, FileNotFoundError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
