import logging
import sys

from xref_demand.errors import XrefError
from xref_demand.logger import setup_logger
from xref_demand.pipelines.crossref import CrossReferencePipeline

logger = logging.getLogger(__name__)


def run_crossref_update(test_mode: bool = False) -> int:
    setup_logger()
    try:
        result = CrossReferencePipeline(test_mode=test_mode).run()
    except XrefError as e:
        logger.error(f"❌ Run aborted [{e.error_code}]: {e.message}")
        return 1
    return 0 if result is not None else 1


if __name__ == "__main__":
    sys.exit(run_crossref_update(test_mode="--test" in sys.argv))
