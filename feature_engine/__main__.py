"""
特徵批次作業 CLI

用法：
    feature-engine                       # 執行全部階段
    feature-engine --phase daily_indicators --phase market_breadth_history
    feature-engine --database-url sqlite:///data/stocks.db --workers 4
"""

import argparse
import logging
import sys

from feature_engine.repositories.database import (
    DATABASE_URL,
    create_session_factory,
    init_db,
)
from feature_engine.services.feature_pipeline import PHASES, FeaturePipeline
from feature_engine.shared.constants import DEFAULT_WORKERS
from feature_engine.shared.exceptions import FeatureEngineError

logger = logging.getLogger("feature_engine")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="重建技術指標、籌碼集中度、大盤廣度與產業彙總特徵表")
    parser.add_argument(
        "--database-url",
        default=DATABASE_URL,
        help="資料庫連線字串（預設讀取 FEATURE_ENGINE_DATABASE_URL）",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=DEFAULT_WORKERS,
        help=f"個股階段平行計算的 thread 數（預設 {DEFAULT_WORKERS}）",
    )
    parser.add_argument(
        "--phase",
        action="append",
        choices=list(PHASES),
        help="只執行指定階段（可重複）",
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="先建立所有資料表（含來源表）",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="輸出 DEBUG 日誌")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    Session = create_session_factory(args.database_url)
    session = Session()
    try:
        if args.init_db:
            init_db(bind=session.get_bind())

        result = FeaturePipeline(session, workers=args.workers, phases=args.phase).run()
    except FeatureEngineError as e:
        logger.error(f"[{e.code}] {e.message}")
        return 1
    finally:
        session.close()

    print("\n" + "=" * 60)
    print("特徵作業結果")
    print("=" * 60)
    for phase in result.phases:
        print(
            f"{phase.phase:<24} processed={phase.processed:<6} skipped={phase.skipped:<6} "
            f"failed={phase.failed:<4} rows={phase.rows_written}"
        )
        if phase.failed_symbols:
            print(f"{'':<24} failed symbols: {', '.join(phase.failed_symbols[:20])}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
