import sys
import datetime as _dt
from loguru import logger

from book import BookLoadError, aggregate_book_inputs, load_contract_book
from config import ProjectionConfig, ConfigurationError, load_config_from_json
from utils import log_input_parameters, log_projection_results
from simulation import AnnuityScenarioSimulator
from projection import trajectory_to_frame
from plotting import plot_projection_comparison, plot_value_bands
from returns import RANDOM_MODE


def main(argv=None):
    """
    Main execution entry point.

    Loads the scenario configuration (and optionally a contract book), projects the
    client contract against the comparison product, runs Monte Carlo bands in
    random mode, logs results, and generates plots.

    Usage: python main.py [config.json] [contract_book.csv|.xlsx]
    """
    argv = sys.argv[1:] if argv is None else argv
    current_timestamp_str = _dt.datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = f"annuity_proj_log_{current_timestamp_str}.log"

    # Configure loguru
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level="INFO",
        colorize=True,
    )
    logger.add(
        log_filename,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
        level="INFO",
        rotation="10 MB",
    )

    logger.info(f"Logging initialized. Log file: {log_filename}")

    # --- LOAD CONFIGURATION FROM JSON ---
    if argv:
        json_filename = argv[0]
    else:
        json_filename = "config.json"
        logger.info(
            f"No config file specified via argument. Defaulting to '{json_filename}'"
        )

    logger.info(f"Loading configuration from: {json_filename}")
    try:
        config_dict = load_config_from_json(json_filename)
        config = ProjectionConfig(**config_dict)
        logger.info(
            f"Configuration for scenario '{config.Nickname}' loaded and validated successfully."
        )
    except ConfigurationError as e:
        logger.error(f"Configuration file error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Configuration validation error: {e}")
        return 1

    book_inputs = None
    if len(argv) > 1:
        try:
            book_inputs = aggregate_book_inputs(load_contract_book(argv[1]))
        except BookLoadError as e:
            logger.error(f"Contract book error: {e}")
            return 1

    log_input_parameters(config, book_inputs)

    simulator = AnnuityScenarioSimulator(config, book_inputs=book_inputs)
    result = simulator.run_comparison()

    percentiles_df, sample_paths = None, None
    if config.mode == RANDOM_MODE:
        logger.info(
            f"--- Running {config.num_paths} Monte Carlo paths for '{config.Nickname}' ---"
        )
        percentiles_df, sample_paths = simulator.run_monte_carlo()

    log_projection_results(result, percentiles_df)

    safe_nickname = "".join(
        c if c.isalnum() or c in ["_", "-"] else "_" for c in config.Nickname
    )
    plot_file_base = f"annuity_proj_{safe_nickname}_{current_timestamp_str}"

    trajectory_filename = f"{plot_file_base}_TRAJECTORY.csv"
    client_df = trajectory_to_frame(result.client)
    comparison_df = trajectory_to_frame(result.comparison)
    client_df.merge(
        comparison_df, on="year", suffixes=("_client", "_comparison")
    ).to_csv(trajectory_filename, index=False)
    logger.info(f"Trajectory table saved to {trajectory_filename}")

    plot_projection_comparison(result, config, f"{plot_file_base}_COMPARE.png")
    if percentiles_df is not None:
        plot_value_bands(
            percentiles_df, sample_paths, config, f"{plot_file_base}_BANDS.png"
        )

    logger.info(
        f"--- Main execution finished for scenario '{config.Nickname}'. Outputs in current directory. Log: {log_filename} ---"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
