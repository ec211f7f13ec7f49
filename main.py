import logging
import sys

from xref_demand.errors import XrefError
from xref_demand.logger import setup_logger
from xref_demand.pipelines.benchmark import BenchmarkPipeline
from xref_demand.pipelines.crossref import CrossReferencePipeline

logger = logging.getLogger(__name__)


def run_process(test_mode: bool = False) -> int:
    """Full run: rebuild the resolved mapping, then benchmark demand against it."""
    setup_logger()
    logger.info("--- Starting Cross-Reference Demand Benchmark ---")

    try:
        crossref = CrossReferencePipeline(test_mode=test_mode).run()
        if crossref is None:
            return 1
        benchmark = BenchmarkPipeline(
            mapping=crossref["resolved_mapping"], test_mode=test_mode
        ).run()
        if benchmark is None:
            return 1
    except XrefError as e:
        logger.error(f"❌ Run aborted [{e.error_code}]: {e.message}")
        return 1

    logger.info("\n--- Process Finished Successfully ---")
    return 0


if __name__ == "__main__":
    sys.exit(run_process(test_mode="--test" in sys.argv))
