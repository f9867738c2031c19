"""
ProductivityReport: workbook and JSON export of unit results.

Workbook sheets:
  Hierarchy     one row per tree node (level, path, totals, ratios, goal)
  Workers       attributed revenue rows, absolute and relative side by side
  Unattributed  revenue slots nobody was rostered on
  Periods       optional period roll-up (see period_aggregator)
"""
import json
import logging
from typing import Any, Dict, Optional, Sequence

from productivity.models.productivity_models import UnitResult
from productivity.services.hierarchy_builder import flatten
from productivity.services.period_aggregator import PeriodProductivity

logger = logging.getLogger("productivity-engine.report")

GOAL_COLORS: Dict[str, str] = {
    "great":     "#C6EFCE",
    "ok":        "#FFF2CC",
    "not_great": "#FCE4D6",
    "bad":       "#F8CBAD",
}


class ProductivityReport:

    def __init__(self, currency: str = "EUR"):
        self.currency = currency

    # ── JSON ──────────────────────────────────────────────────────────────────

    def to_dict(self, results: Sequence[UnitResult], periods: Optional[Sequence[PeriodProductivity]] = None) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "units": [result.model_dump(mode="json") for result in results],
        }
        if periods is not None:
            doc["periods"] = [row.model_dump(mode="json") for row in periods]
        return doc

    def to_json(self, results: Sequence[UnitResult], periods: Optional[Sequence[PeriodProductivity]] = None) -> str:
        """Same inputs always give the same text: keys sorted, no timestamps."""
        return json.dumps(self.to_dict(results, periods), sort_keys=True, indent=2)

    # ── Workbook ──────────────────────────────────────────────────────────────

    def write_workbook(
        self,
        results: Sequence[UnitResult],
        path: str,
        periods: Optional[Sequence[PeriodProductivity]] = None,
    ) -> str:
        import xlsxwriter

        wb = xlsxwriter.Workbook(path)
        try:
            hdr = wb.add_format({"bold": True, "bg_color": "#14141E", "font_color": "#FFFFFF",
                                 "border": 1, "font_size": 10})
            money = wb.add_format({"num_format": "#,##0.00", "border": 1})
            hours_fmt = wb.add_format({"num_format": "0.00", "border": 1})
            pct = wb.add_format({"num_format": "0.0", "border": 1})
            normal = wb.add_format({"border": 1, "font_size": 9})
            goal_fmts = {
                status: wb.add_format({"border": 1, "font_size": 9, "bg_color": color})
                for status, color in GOAL_COLORS.items()
            }
            cur = self.currency

            # ── Sheet 1: Hierarchy ───────────────────────────────────────────
            ws = wb.add_worksheet("Hierarchy")
            ws.set_column("A:B", 14)
            ws.set_column("C:C", 14)
            ws.set_column("D:D", 60)
            ws.set_column("E:J", 14)
            ws.write_row(0, 0, [
                "Location", "Date", "Level", "Path", "Hours", f"Cost ({cur})",
                f"Revenue ({cur})", f"Revenue/Hour ({cur})", "Labor Cost %", "Goal",
            ], hdr)
            row_idx = 1
            for result in results:
                if result.hierarchy is None:
                    continue
                for node in flatten(result.hierarchy):
                    ws.write(row_idx, 0, node["location_id"], normal)
                    ws.write(row_idx, 1, node["date"].isoformat(), normal)
                    ws.write(row_idx, 2, node["level"], normal)
                    ws.write(row_idx, 3, node["path"], normal)
                    ws.write(row_idx, 4, node["total_hours"], hours_fmt)
                    ws.write(row_idx, 5, node["total_cost"], money)
                    ws.write(row_idx, 6, node["total_revenue"], money)
                    ws.write(row_idx, 7, node["revenue_per_hour"], money)
                    ws.write(row_idx, 8, node["labor_cost_percentage"], pct)
                    ws.write(row_idx, 9, node["goal_status"] or "", goal_fmts.get(node["goal_status"], normal))
                    row_idx += 1
            ws.freeze_panes(1, 0)

            # ── Sheet 2: Workers ─────────────────────────────────────────────
            ws2 = wb.add_worksheet("Workers")
            ws2.set_column("A:D", 16)
            ws2.set_column("E:J", 14)
            ws2.write_row(0, 0, [
                "Location", "Date", "Worker", "Worker ID", "Category", "Hours",
                f"Cost ({cur})", f"Absolute Revenue ({cur})", f"Relative Revenue ({cur})",
                f"Relative Revenue/Hour ({cur})",
            ], hdr)
            row_idx = 1
            for result in results:
                for rev in result.attributed_revenue:
                    per_hour = rev.relative_revenue / rev.total_hours if rev.total_hours > 0 else 0.0
                    ws2.write_row(row_idx, 0, [
                        rev.location_id, rev.date.isoformat(), rev.worker_name,
                        rev.worker_id, rev.team_category,
                    ], normal)
                    ws2.write(row_idx, 5, rev.total_hours, hours_fmt)
                    ws2.write(row_idx, 6, rev.total_cost, money)
                    ws2.write(row_idx, 7, rev.absolute_revenue, money)
                    ws2.write(row_idx, 8, rev.relative_revenue, money)
                    ws2.write(row_idx, 9, per_hour, money)
                    row_idx += 1
            ws2.freeze_panes(1, 0)

            # ── Sheet 3: Unattributed ────────────────────────────────────────
            ws3 = wb.add_worksheet("Unattributed")
            ws3.set_column("A:E", 14)
            ws3.write_row(0, 0, ["Location", "Date", "Hour", "Division", f"Revenue ({cur})"], hdr)
            row_idx = 1
            total_house = 0.0
            for result in results:
                for slot in result.unattributed:
                    ws3.write_row(row_idx, 0, [slot.location_id, slot.date.isoformat(), slot.hour, slot.division], normal)
                    ws3.write(row_idx, 4, slot.revenue, money)
                    total_house += slot.revenue
                    row_idx += 1
            ws3.write(row_idx + 1, 0, "TOTAL UNATTRIBUTED", hdr)
            ws3.write(row_idx + 1, 4, total_house, money)

            # ── Sheet 4: Periods ─────────────────────────────────────────────
            if periods is not None:
                ws4 = wb.add_worksheet("Periods")
                ws4.set_column("A:E", 16)
                ws4.set_column("F:L", 14)
                ws4.write_row(0, 0, [
                    "Period", "Location", "Worker", "Worker ID", "Category", "Days", "Hours",
                    f"Cost ({cur})", f"Relative Revenue ({cur})", f"Revenue/Hour ({cur})",
                    "Labor Cost %", "Goal",
                ], hdr)
                for i, agg in enumerate(periods):
                    r = i + 1
                    ws4.write_row(r, 0, [
                        agg.period, agg.location_id, agg.worker_name, agg.worker_id,
                        agg.team_category, agg.days_worked,
                    ], normal)
                    ws4.write(r, 6, agg.total_hours, hours_fmt)
                    ws4.write(r, 7, agg.total_cost, money)
                    ws4.write(r, 8, agg.relative_revenue, money)
                    ws4.write(r, 9, agg.revenue_per_hour, money)
                    ws4.write(r, 10, agg.labor_cost_percentage, pct)
                    ws4.write(r, 11, agg.goal_status or "", goal_fmts.get(agg.goal_status, normal))
        finally:
            wb.close()

        logger.info("productivity workbook written", extra={"reason": path})
        return path

