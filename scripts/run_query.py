import cv2
import hydra
from omegaconf import DictConfig, OmegaConf

from vqpy.application.builder import QueryApplicationBuilder
from vqpy.common.config import ConfigManager
from vqpy.presentation.cli import load_query_class
from vqpy.presentation.visualization.opencv_visualizer import OpenCVVisualizer


@hydra.main(version_base=None, config_path="../conf", config_name="config")
def main(cfg: DictConfig):
    print(f"Configuration:\n{OmegaConf.to_yaml(cfg)}")

    query_cls = load_query_class(cfg.query_class)
    cfg = ConfigManager.validate(cfg)
    query_cfg = cfg.query

    builder = QueryApplicationBuilder(cfg)
    pipeline = (
        builder
        .build_models()
        .build_history()
        .build_persistence()
        .build_source()
        .build_pipeline(query_cls)
    )

    print(builder.compiled_query.explain())
    visualizer = OpenCVVisualizer()

    print("\nStarting video processing. Press 'q' to exit.")

    try:
        for frame, result in pipeline.run():
            if query_cfg.display:
                cv2.imshow("VQPy", visualizer.draw(frame.image, result))
                if cv2.waitKey(1) & 0xFF == ord('q'):
                    break
            elif result.matched:
                print(f"Frame {frame.id}: {len(result.matches)} matches")

    except KeyboardInterrupt:
        print("Interrupted by user.")
    finally:
        pipeline.stop()
        if builder.repository is not None:
            builder.repository.close()
        cv2.destroyAllWindows()

    print(f"Metrics: {builder.metrics_collector.get_metrics().to_dict()}")


if __name__ == "__main__":
    main()
