"""Digital business card rendering.

Draws the same card the detail page shows (photo, logo, name, contact
fields and the vCard QR code) into a PNG. The card is always rendered at
CARD_PIXEL_RATIO so downloads stay print quality whatever the display
scaling of the device that asked for it.
"""
from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from typing import Optional

from PIL import Image, ImageColor, ImageDraw, ImageFont, ImageOps

from app.cards.downloads import content_disposition
from app.cards.images import resolve_image_url
from app.cards.qr import make_qr_image
from app.cards.vcard import build_vcard
from app.core.config import CARD_PIXEL_RATIO, DEFAULT_CARD_BACKGROUND, logger
from app.models.registrations import Registration
from app.wrapper.registration_client import RegistrationAPIError, RegistrationClient

# Layout in CSS pixels; multiplied by CARD_PIXEL_RATIO when drawing
CARD_WIDTH = 384
PHOTO_SIZE = 144
PHOTO_BORDER = 4
LOGO_SIZE = 80
QR_SIZE = 180
PADDING = 24

WHITE = (255, 255, 255)
PANEL_BORDER = (229, 231, 235)
PLACEHOLDER_BG = (229, 231, 235)
PLACEHOLDER_FG = (156, 163, 175)
TEXT_DARK = (31, 41, 55)
TEXT_MUTED = (75, 85, 99)
TEXT_FAINT = (107, 114, 128)
QR_WELL = (243, 244, 246)


class CardRenderError(Exception):
    """Raised when a card cannot be rendered. Callers recover and show a message."""
    pass


@dataclass
class RenderedCard:
    content: bytes
    filename: str
    share: bool = False
    media_type: str = "image/png"

    def headers(self) -> dict[str, str]:
        # inline lets the page hand the file to the share sheet; attachment forces a download
        return {"Content-Disposition": content_disposition(self.filename, inline=self.share)}


def card_filename(record: Registration) -> str:
    return f"{record.first_name}_{record.last_name}_Card.png"


def card_background(record: Registration) -> tuple[int, int, int]:
    """Record's chosen colour, or the default when blank or unparseable."""
    colour = record.change_background_colour.strip() or DEFAULT_CARD_BACKGROUND
    try:
        return ImageColor.getrgb(colour)[:3]
    except ValueError:
        logger.warning(f"Unusable background colour {colour!r} on registration {record.id}")
        return ImageColor.getrgb(DEFAULT_CARD_BACKGROUND)[:3]


def _get_font(size: int, bold: bool = False) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Get a font for card text, with fallback."""
    names = ["DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf"] if bold else []
    names += ["DejaVuSans.ttf", "Arial.ttf", "arial.ttf", "FreeSans.ttf"]
    for font_name in names:
        try:
            return ImageFont.truetype(font_name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _fit_text(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> str:
    """Truncates text with an ellipsis so it fits on one line."""
    if draw.textlength(text, font=font) <= max_width:
        return text
    while text and draw.textlength(text + "...", font=font) > max_width:
        text = text[:-1]
    return text + "..."


class CardRenderer:
    """Renders registrations into PNG cards, fetching their images through the API client."""

    def __init__(self, client: RegistrationClient):
        self.client = client
        self.ratio = CARD_PIXEL_RATIO

    def _px(self, value: float) -> int:
        return int(round(value * self.ratio))

    def _load_image(self, reference: Optional[str]) -> Optional[Image.Image]:
        url = resolve_image_url(reference, self.client.base_url)
        if url is None:
            return None
        data = self.client.fetch_image(url)
        image = Image.open(BytesIO(data))
        image.load()
        return image.convert("RGBA")

    def render(self, record: Registration, share: bool = False) -> RenderedCard:
        try:
            photo = self._load_image(record.profile_pics)
            logo = self._load_image(record.company_logo)
            content = self._draw(record, photo, logo)
        except (RegistrationAPIError, OSError, ValueError) as e:
            logger.error(f"Image generation failed for registration {record.id}: {e}")
            raise CardRenderError("Could not generate image card.") from e

        logger.info(f"Rendered card for registration {record.id} ({'share' if share else 'download'})")
        return RenderedCard(content=content, filename=card_filename(record), share=share)

    def _draw(self, record: Registration, photo: Optional[Image.Image], logo: Optional[Image.Image]) -> bytes:
        px = self._px
        background = card_background(record)

        header_h = PADDING + PHOTO_SIZE + 12
        if logo is not None:
            header_h += 16 + LOGO_SIZE
        details_lines = 3
        details_h = 16 + 28 + (24 if record.designation else 0) + 12 + details_lines * 22 + 16
        qr_h = 20 + QR_SIZE + 24 + 8 + 16 + 20
        height = header_h + details_h + qr_h

        canvas = Image.new("RGB", (px(CARD_WIDTH), px(height)), background)
        draw = ImageDraw.Draw(canvas)

        # Photo frame
        photo_x = px((CARD_WIDTH - PHOTO_SIZE) / 2)
        photo_y = px(PADDING)
        frame = px(PHOTO_SIZE)
        draw.ellipse([photo_x, photo_y, photo_x + frame, photo_y + frame], fill=WHITE)
        inner = frame - 2 * px(PHOTO_BORDER)
        inner_xy = (photo_x + px(PHOTO_BORDER), photo_y + px(PHOTO_BORDER))
        mask = Image.new("L", (inner, inner), 0)
        ImageDraw.Draw(mask).ellipse([0, 0, inner - 1, inner - 1], fill=255)
        if photo is not None:
            fitted = ImageOps.fit(photo, (inner, inner), Image.Resampling.LANCZOS)
            flat = Image.new("RGB", (inner, inner), PLACEHOLDER_BG)
            flat.paste(fitted, (0, 0), fitted)
            canvas.paste(flat, inner_xy, mask)
        else:
            placeholder = Image.new("RGB", (inner, inner), PLACEHOLDER_BG)
            pdraw = ImageDraw.Draw(placeholder)
            head = inner // 4
            cx = inner // 2
            pdraw.ellipse([cx - head // 2, inner // 4, cx + head // 2, inner // 4 + head], fill=PLACEHOLDER_FG)
            pdraw.ellipse([cx - head, inner // 2 + head // 4, cx + head, inner + head], fill=PLACEHOLDER_FG)
            canvas.paste(placeholder, inner_xy, mask)

        y = PADDING + PHOTO_SIZE + 12
        if logo is not None:
            y += 16
            box = px(LOGO_SIZE)
            contained = ImageOps.contain(logo, (box, box), Image.Resampling.LANCZOS)
            lx = px(CARD_WIDTH / 2) - contained.width // 2
            ly = px(y) + (box - contained.height) // 2
            canvas.paste(contained, (lx, ly), contained)
            y += LOGO_SIZE

        # Contact details panel
        panel_top = px(y)
        draw.rectangle([0, panel_top, px(CARD_WIDTH), px(y + details_h)], fill=WHITE)
        draw.line([0, panel_top, px(CARD_WIDTH), panel_top], fill=PANEL_BORDER, width=px(1))
        text_x = px(PADDING)
        text_w = px(CARD_WIDTH - 2 * PADDING)
        y += 16

        name_font = _get_font(px(20), bold=True)
        draw.text((text_x, px(y)), _fit_text(draw, record.full_name, name_font, text_w), fill=TEXT_DARK, font=name_font)
        y += 28
        if record.designation:
            title_font = _get_font(px(16))
            draw.text((text_x, px(y)), _fit_text(draw, record.designation, title_font, text_w), fill=TEXT_MUTED, font=title_font)
            y += 24
        draw.line([text_x, px(y + 6), text_x + text_w, px(y + 6)], fill=QR_WELL, width=px(1))
        y += 12

        body_font = _get_font(px(14))
        label_font = _get_font(px(14), bold=True)
        for label, value in (
            ("Email:", record.email),
            ("Phone:", record.phone_number),
            ("Blood Group:", record.blood_group),
        ):
            draw.text((text_x, px(y)), label, fill=TEXT_DARK, font=label_font)
            offset = int(draw.textlength(label + " ", font=label_font))
            draw.text(
                (text_x + offset, px(y)),
                _fit_text(draw, value or "N/A", body_font, text_w - offset),
                fill=TEXT_DARK,
                font=body_font,
            )
            y += 22
        y += 16
        draw.line([0, px(y), px(CARD_WIDTH), px(y)], fill=PANEL_BORDER, width=px(1))

        # vCard QR section
        draw.rectangle([0, px(y), px(CARD_WIDTH), px(height)], fill=WHITE)
        y += 20
        well = QR_SIZE + 24
        wx = px((CARD_WIDTH - well) / 2)
        draw.rounded_rectangle([wx, px(y), wx + px(well), px(y + well)], radius=px(12), fill=QR_WELL)
        qr = make_qr_image(build_vcard(record)).resize((px(QR_SIZE), px(QR_SIZE)), Image.Resampling.NEAREST)
        canvas.paste(qr, (wx + px(12), px(y + 12)))
        y += well + 8

        caption_font = _get_font(px(12))
        caption = "Scan this QR to save contact (vCard)"
        cw = draw.textlength(caption, font=caption_font)
        draw.text((int((px(CARD_WIDTH) - cw) / 2), px(y)), caption, fill=TEXT_FAINT, font=caption_font)

        buffer = BytesIO()
        canvas.save(buffer, format="PNG", dpi=(72 * self.ratio, 72 * self.ratio))
        return buffer.getvalue()


def render_card(client: RegistrationClient, record: Registration, share: bool = False) -> RenderedCard:
    return CardRenderer(client).render(record, share=share)
