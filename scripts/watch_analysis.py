#!/usr/bin/env python3
"""Drive the analysis backend from the command line.

Usage:
    python scripts/watch_analysis.py --list                                  # List companies
    python scripts/watch_analysis.py --add INFY --name "Infosys" --sector IT  # Create a company
    python scripts/watch_analysis.py --ticker INFY                           # Documents + risk history
    python scripts/watch_analysis.py --ticker INFY --year 2024 --upload ar_2024.pdf
    python scripts/watch_analysis.py --ticker INFY --year 2024 --analyze     # Submit and watch the job
"""

import sys
import os
import argparse
import asyncio
import logging

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from quantifier.config import settings
from quantifier.errors import QuantifierError
from quantifier.services.analytics import active_progress, upload_slots
from quantifier.services.gateway import RemoteGateway
from quantifier.services.jobs import ReconciliationController


def print_company_view(controller: ReconciliationController):
    state = controller.state
    company = state.selected
    print(f"\n{'='*50}")
    print(f"{company.name} ({company.symbol}){' - ' + company.sector if company.sector else ''}")
    print(f"{'='*50}")

    print("\n[Documents]")
    for slot in upload_slots(state.documents, settings.upload_years):
        doc = slot["document"]
        if doc:
            print(f"  FY {slot['fiscal_year']}: {doc.page_count} pages, {doc.word_count:,} words")
        else:
            print(f"  FY {slot['fiscal_year']}: not uploaded")

    view = controller.analytics()
    headline = view.headline()
    print("\n[Risk History]")
    if headline is None:
        print("  No analysis results yet")
        return
    print(f"  Latest {headline['fiscal_year']}: urgency {headline['urgency']}, "
          f"sentiment {headline['sentiment_delta']}")
    for point in view.radar_series():
        print(f"    {point['label']:<30} {point['magnitude']:.1f}")
    if view.show_trend():
        print("\n[Trend]")
        print(view.trend_frame().to_string())
    for card in view.history_cards():
        print(f"  {card['label']}: {card['urgency']} | {card['category_count']} categories, "
              f"{card['new_risk_count']} new risks, {card['key_phrase_count']} key phrases")


async def watch(controller: ReconciliationController, job_id: str):
    while controller.scheduler.running:
        await asyncio.sleep(controller.scheduler.interval)
        for row in active_progress(controller.job_snapshots()):
            print(f"  [{row['progress']:>3}%] {row['job_id']}: {row['message']}")
    job = controller.job_snapshots().get(job_id)
    if job is not None:
        print(f"  [{job.status.value.upper()}] {job_id}: {job.message}")


async def run(args) -> int:
    async with RemoteGateway() as gateway:
        controller = ReconciliationController(gateway)
        try:
            if args.list:
                for company in await controller.load_companies():
                    print(f"  {company.label}{' (' + company.sector + ')' if company.sector else ''}")
                return 0

            if args.add:
                company = await controller.create_company(args.add, args.name, args.sector)
                print(f"  [OK] Added {company.label}")
                return 0

            if not args.ticker:
                print("  [ERR] --ticker is required")
                return 2
            await controller.select_company(args.ticker)

            if args.upload:
                doc = await controller.upload_document(args.upload, args.year)
                print(f"  [OK] Uploaded {args.upload} as FY {doc.fiscal_year}")

            if args.analyze:
                job_id = await controller.start_job(args.ticker.upper(), args.year)
                print(f"  [OK] Analysis started: {job_id}")
                await watch(controller, job_id)

            print_company_view(controller)
            return 0
        except QuantifierError as e:
            print(f"  [ERR] {type(e).__name__}: {e}")
            return 1
        finally:
            await controller.shutdown()


def main():
    parser = argparse.ArgumentParser(description="Upload reports and track risk analysis jobs")
    parser.add_argument("--list", action="store_true", help="List companies")
    parser.add_argument("--add", type=str, metavar="SYMBOL", help="Create a company")
    parser.add_argument("--name", type=str, default="", help="Company name (with --add)")
    parser.add_argument("--sector", type=str, default=None, help="Company sector (with --add)")
    parser.add_argument("--ticker", type=str, help="Company symbol to work on")
    parser.add_argument("--year", type=int, default=settings.upload_years[0], help="Fiscal year")
    parser.add_argument("--upload", type=str, metavar="PATH", help="Upload a document for --year")
    parser.add_argument("--analyze", action="store_true", help="Run analysis for --year and watch it")
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
