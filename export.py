import io
import logging

import pandas as pd
from PIL import Image, ImageDraw, ImageFont

from league import Mode, MatchStatus, leader, lookup_result, match_status

logger = logging.getLogger(__name__)

IMAGE_NAME = "league-result.png"
STATUS_LABELS = {
    MatchStatus.PENDING: "–",
    MatchStatus.PARTIAL: "partial",
    MatchStatus.UNCONFIRMED: "unconfirmed",
    MatchStatus.CONFIRMED: "final",
}


def fmt_number(value):
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def fmt_diff(value):
    text = fmt_number(value)
    return f"+{text}" if value > 0 else text


def fmt_score(scores, mode):
    if scores is None:
        return ""
    a, b = scores
    if mode == Mode.WIN_LOSS:
        if a is None:
            return ""
        return {1: "W", 0.5: "D", 0: "L"}.get(a, fmt_number(a))
    return f"{fmt_number(a)}-{fmt_number(b)}" if a is not None or b is not None else ""


# --------------------------------------------------------------------------- #
# Tables
# --------------------------------------------------------------------------- #
def standings_frame(standings, mode, allow_draw):
    rows = []
    for i, s in enumerate(standings):
        row = {"Rank": i + 1, "Name": s.name, "Pts": s.points, "W": s.wins}
        if allow_draw:
            row["D"] = s.draws
        row["L"] = s.losses
        if mode == Mode.SCORE:
            row["GD"] = fmt_diff(s.goal_difference)
            row["GF"] = fmt_number(s.goals_for)
        rows.append(row)
    return pd.DataFrame(rows)


def _grid_cell(results, mode, order, a, b):
    text = fmt_score(lookup_result(results, a, b), mode)
    number = order.get((a, b)) if order else None
    if number is None:
        return text
    return f"#{number} {text}".rstrip()


def results_grid(roster, results, mode, order=None):
    """Cross-table of results, each row read from that participant's side.

    When an order map is given every cell is prefixed with the match number.
    """
    names = [p.name for p in roster]
    data = []
    for row in roster:
        data.append([
            "" if row.id == col.id else _grid_cell(results, mode, order, row.id, col.id)
            for col in roster
        ])
    return pd.DataFrame(data, index=names, columns=names)


def schedule_frame(schedule, results, mode, allow_draw):
    rows = []
    for rnd in schedule:
        for m in rnd.matches:
            if m.is_bye:
                rows.append({"Round": rnd.number, "Match": "", "Player A": m.participant_a.name,
                             "Player B": "BYE", "Score": "", "Status": "rest"})
                continue
            a, b = m.participant_a.id, m.participant_b.id
            status = match_status(results, a, b, mode, allow_draw)
            rows.append({
                "Round": rnd.number,
                "Match": m.sequence,
                "Player A": m.participant_a.name,
                "Player B": m.participant_b.name,
                "Score": fmt_score(lookup_result(results, a, b), mode),
                "Status": STATUS_LABELS[status],
            })
    return pd.DataFrame(rows)


def to_csv_bytes(df, index=False):
    return df.to_csv(index=index).encode("utf-8")


def to_excel_bytes(sheets):
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name[:31], index=False)
    return buf.getvalue()


# --------------------------------------------------------------------------- #
# Clipboard text
# --------------------------------------------------------------------------- #
def summary_text(snapshot, standings, schedule):
    mode = snapshot.mode
    top = leader(standings)
    lines = [snapshot.title, ""]
    for i, s in enumerate(standings):
        record = f"{s.wins}W"
        if snapshot.allow_draw:
            record += f" {s.draws}D"
        record += f" {s.losses}L"
        line = f"{i + 1}. {s.name}  {s.points}pts  {record}"
        if mode == Mode.SCORE:
            line += f"  GD {fmt_diff(s.goal_difference)}  GF {fmt_number(s.goals_for)}"
        if top is not None and s is top:
            line += "  👑"
        lines.append(line)

    if snapshot.show_order and schedule:
        lines += ["", "Schedule"]
        for rnd in schedule:
            lines.append(f"Round {rnd.number}")
            for m in rnd.matches:
                if m.is_bye:
                    lines.append(f"  rest: {m.participant_a.name}")
                    continue
                score = fmt_score(lookup_result(snapshot.matches, m.participant_a.id, m.participant_b.id), mode)
                tail = f"  {score}" if score else ""
                lines.append(f"  #{m.sequence} {m.participant_a.name} vs {m.participant_b.name}{tail}")
    return "\n".join(lines)


# --------------------------------------------------------------------------- #
# Image
# --------------------------------------------------------------------------- #
def standings_png(title, df, highlight_first=False):
    """Render a standings DataFrame as a PNG table, returned as bytes."""
    font = ImageFont.load_default()
    pad, row_h = 12, 26
    columns = [str(c) for c in df.columns]
    cells = [[str(v) for v in row] for row in df.itertuples(index=False)]

    def text_w(text):
        left, _, right, _ = font.getbbox(text)
        return right - left

    widths = [
        max([text_w(columns[j])] + [text_w(r[j]) for r in cells]) + 2 * pad
        for j in range(len(columns))
    ]
    width = max(sum(widths), text_w(title) + 2 * pad, 200)
    height = row_h * (len(cells) + 2) + pad

    img = Image.new("RGB", (width, height), "#ffffff")
    draw = ImageDraw.Draw(img)
    draw.text((pad, pad // 2), title, fill="#111827", font=font)

    y = row_h
    draw.rectangle([0, y, width, y + row_h], fill="#f3f4f6")
    for r, row in enumerate([columns] + cells):
        if r == 1 and highlight_first:
            draw.rectangle([0, y, width, y + row_h], fill="#fefce8")
        x = 0
        for j, text in enumerate(row):
            draw.text((x + pad, y + 7), text, fill="#1f2937", font=font)
            x += widths[j]
        draw.line([0, y + row_h, width, y + row_h], fill="#d1d5db")
        y += row_h

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    logger.info(f"Rendered standings image {width}x{height}")
    return buf.getvalue()
