"""
Certificate PDF rendering.
Draws a landscape A4 page with Pillow, adds a Code128 barcode of the
certificate number via python-barcode, and saves the page as a PDF.
"""
import io
import logging
from PIL import Image, ImageDraw, ImageFont
import barcode
from barcode.writer import ImageWriter

logger = logging.getLogger('backend.certificates')

DPI = 150
# A4 landscape at 150 DPI
PAGE_WIDTH = 1754
PAGE_HEIGHT = 1240

FONT_PATHS = {
    'bold': ['/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf', 'arialbd.ttf'],
    'regular': ['/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf', 'arial.ttf'],
    'serif': ['/usr/share/fonts/truetype/dejavu/DejaVuSerif-Bold.ttf', 'georgiab.ttf', 'timesbd.ttf'],
}


def load_font(kind, size):
    """First available TrueType font of the kind, or Pillow's default"""
    for path in FONT_PATHS[kind]:
        try:
            return ImageFont.truetype(path, size)
        except (OSError, IOError):
            continue
    try:
        return ImageFont.load_default(size=size)
    except TypeError:
        return ImageFont.load_default()


def draw_centered(draw, y, text, font, fill):
    bbox = draw.textbbox((0, 0), text, font=font)
    text_width = bbox[2] - bbox[0]
    draw.text(((PAGE_WIDTH - text_width) // 2, y), text, fill=fill, font=font)
    return y + (bbox[3] - bbox[1])


def render_barcode(value, max_width, max_height):
    """Code128 barcode image scaled to fit the box"""
    code128 = barcode.get_barcode_class('code128')
    barcode_img = code128(value, writer=ImageWriter()).render({
        'write_text': False,
        'module_width': 0.3,
        'module_height': 12.0,
        'quiet_zone': 2.0,
        'background': 'white',
        'foreground': 'black',
    })
    width, height = barcode_img.size
    scale = min(max_width / width, max_height / height)
    return barcode_img.resize((int(width * scale), int(height * scale)), Image.Resampling.BILINEAR)


def format_date(value):
    return value.strftime('%B %d, %Y') if value else ''


def generate_certificate_pdf(certificate, template, organization_name):
    """
    Render a certificate to PDF bytes.

    Args:
        certificate: Certificate instance
        template: certificate template dict (colours, signer, custom text)
        organization_name: issuing pharmacy name shown in the header
    """
    background = template.get('background_color') or '#ffffff'
    text_color = template.get('text_color') or '#1a1a2e'
    border_color = template.get('border_color') or '#0066cc'

    img = Image.new('RGB', (PAGE_WIDTH, PAGE_HEIGHT), color=background)
    draw = ImageDraw.Draw(img)

    # Double border
    draw.rectangle([40, 40, PAGE_WIDTH - 40, PAGE_HEIGHT - 40], outline=border_color, width=8)
    draw.rectangle([62, 62, PAGE_WIDTH - 62, PAGE_HEIGHT - 62], outline=border_color, width=3)

    font_org = load_font('bold', 40)
    font_title = load_font('serif', 72)
    font_body = load_font('regular', 34)
    font_name = load_font('serif', 64)
    font_training = load_font('bold', 46)
    font_small = load_font('regular', 26)
    font_footer = load_font('regular', 20)

    y = 130
    y = draw_centered(draw, y, organization_name, font_org, border_color) + 50
    y = draw_centered(draw, y, 'CERTIFICATE OF COMPLETION', font_title, text_color) + 70
    y = draw_centered(draw, y, 'This is to certify that', font_body, text_color) + 40
    y = draw_centered(draw, y, certificate.user_name, font_name, border_color) + 20
    draw.line([(PAGE_WIDTH // 2 - 400, y + 10), (PAGE_WIDTH // 2 + 400, y + 10)], fill=border_color, width=2)
    y += 50
    y = draw_centered(draw, y, 'has successfully completed the training program', font_body, text_color) + 35
    y = draw_centered(draw, y, certificate.training_title, font_training, text_color) + 35

    if certificate.exam_score is not None:
        y = draw_centered(draw, y, f'Score: {certificate.exam_score:g}%', font_small, text_color) + 25

    dates = f'Issued: {format_date(certificate.issue_date)}'
    if certificate.expiry_date:
        dates += f'    Valid until: {format_date(certificate.expiry_date)}'
    y = draw_centered(draw, y, dates, font_small, text_color) + 25

    custom_text = template.get('custom_text')
    if custom_text:
        y = draw_centered(draw, y, custom_text, font_small, text_color) + 25

    signer_name = template.get('signer_name')
    if signer_name:
        signature_y = PAGE_HEIGHT - 330
        draw.line([(PAGE_WIDTH // 2 - 220, signature_y), (PAGE_WIDTH // 2 + 220, signature_y)], fill=text_color, width=2)
        after_name = draw_centered(draw, signature_y + 12, signer_name, font_small, text_color)
        signer_title = template.get('signer_title')
        if signer_title:
            draw_centered(draw, after_name + 10, signer_title, font_footer, text_color)

    footer_y = PAGE_HEIGHT - 170
    draw.text((100, footer_y), f'Certificate ID: {certificate.certificate_number}', fill=text_color, font=font_footer)
    draw.text((100, footer_y + 32), f'Verification code: {certificate.verification_code}', fill=text_color, font=font_footer)

    try:
        barcode_img = render_barcode(certificate.certificate_number, 420, 80)
        img.paste(barcode_img, (PAGE_WIDTH - 100 - barcode_img.size[0], footer_y - 10))
    except Exception as e:
        logger.error(f"Barcode generation failed for {certificate.certificate_number}: {str(e)}", exc_info=True)

    buffer = io.BytesIO()
    img.save(buffer, format='PDF', resolution=DPI)
    return buffer.getvalue()
