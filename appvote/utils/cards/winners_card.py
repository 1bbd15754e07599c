from __future__ import annotations

import io
from dataclasses import dataclass

from PIL import Image, ImageDraw, ImageFont


@dataclass(frozen=True, slots=True)
class CardWinner:
    position: int  # 1..3
    app_name: str
    owner: str


def _try_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """
    Tries common system fonts, falls back to the PIL default.
    """
    candidates = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "C:\\Windows\\Fonts\\segoeui.ttf",
        "C:\\Windows\\Fonts\\arial.ttf",
    ]
    for path in candidates:
        try:
            return ImageFont.truetype(path, size=size)
        except OSError:
            continue
    return ImageFont.load_default()


def _clip(s: str, limit: int) -> str:
    return s if len(s) <= limit else s[: limit - 1] + "…"


def render_winners_card(
    *,
    week_name: str,
    winners: list[CardWinner],
    subtitle: str = "",
    title: str = "Contest Winners",
) -> bytes:
    """
    Returns PNG bytes: a header with the week, then one row per podium position.
    Empty positions are drawn greyed out.
    """
    W, H = 1200, 675  # 16:9
    pad = 48

    img = Image.new("RGB", (W, H), (248, 249, 251))
    draw = ImageDraw.Draw(img)

    font_title = _try_font(52)
    font_sub = _try_font(28)
    font_row = _try_font(34)
    font_small = _try_font(22)

    header_h = 170
    draw.rounded_rectangle(
        (pad, pad, W - pad, pad + header_h),
        radius=28,
        fill=(255, 255, 255),
        outline=(235, 236, 240),
        width=2,
    )
    draw.text((pad + 32, pad + 28), f"{title} · {week_name}", font=font_title, fill=(15, 23, 42))
    if subtitle:
        draw.text((pad + 32, pad + 100), subtitle, font=font_sub, fill=(55, 65, 81))

    body_top = pad + header_h + 26
    draw.rounded_rectangle(
        (pad, body_top, W - pad, H - pad),
        radius=28,
        fill=(255, 255, 255),
        outline=(235, 236, 240),
        width=2,
    )

    muted = (107, 114, 128)
    draw.text((pad + 36, body_top + 28), "Place", font=font_small, fill=muted)
    draw.text((pad + 190, body_top + 28), "App", font=font_small, fill=muted)
    draw.text((W - pad - 330, body_top + 28), "Maker", font=font_small, fill=muted)

    by_position = {w.position: w for w in winners}
    labels = {1: "1st", 2: "2nd", 3: "3rd"}
    row_y = body_top + 72
    row_h = 120

    for i, position in enumerate((1, 2, 3)):
        y1 = row_y + i * row_h
        y2 = y1 + row_h - 12
        if i % 2 == 0:
            draw.rounded_rectangle((pad + 20, y1, W - pad - 20, y2), radius=22, fill=(249, 250, 251))

        w = by_position.get(position)
        ink = (15, 23, 42) if w else (156, 163, 175)
        draw.text((pad + 40, y1 + 34), labels[position], font=font_row, fill=ink)
        draw.text((pad + 190, y1 + 34), _clip(w.app_name, 28) if w else "—", font=font_row, fill=ink)
        draw.text((W - pad - 330, y1 + 34), _clip(w.owner, 16) if w else "—", font=font_row, fill=ink)

    draw.text((pad + 36, H - pad - 34), "AppVote Contest", font=font_small, fill=(156, 163, 175))

    buf = io.BytesIO()
    img.save(buf, format="PNG", optimize=True)
    return buf.getvalue()
