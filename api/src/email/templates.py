"""Email templates for Elira.

HTML templates following the Elira visual identity:
- Primary navy: #2C3E54
- Accent: #3B82F6
- Background: #F5F5F5
- Card: #FFFFFF
- Text: #333333
- Muted: #666666
"""

from datetime import datetime


# ==============================================================================
# Base Template
# ==============================================================================

BASE_TEMPLATE = """
<!DOCTYPE html>
<html lang="hu">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title} - Elira</title>
  <style>
    @media only screen and (max-width: 620px) {{
      .content-table {{
        width: 100% !important;
      }}
      .content-padding {{
        padding: 24px 20px !important;
      }}
    }}
  </style>
</head>
<body style="margin: 0; padding: 0; background-color: #F5F5F5; font-family: 'Titillium Web', -apple-system, BlinkMacSystemFont, 'Segoe UI', Arial, sans-serif;">
  <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="background-color: #F5F5F5;">
    <tr>
      <td align="center" style="padding: 40px 20px;">
        <table role="presentation" width="600" cellpadding="0" cellspacing="0" style="background-color: #FFFFFF; border-radius: 12px; box-shadow: 0 2px 8px rgba(0,0,0,0.1); max-width: 600px;" class="content-table">
          <!-- Header -->
          <tr>
            <td style="background-color: #2C3E54; padding: 32px 40px; text-align: center; border-radius: 12px 12px 0 0;">
              <h1 style="margin: 0; font-size: 28px; font-weight: 700; color: #FFFFFF;">
                {title}
              </h1>
            </td>
          </tr>

          <!-- Content -->
          <tr>
            <td style="padding: 40px;" class="content-padding">
              {content}
            </td>
          </tr>

          <!-- Footer -->
          <tr>
            <td style="padding: 24px 40px; background-color: #F8F9FA; border-radius: 0 0 12px 12px; text-align: center;">
              <p style="margin: 0 0 8px; font-size: 14px; color: #666666;">
                Üdvözlettel,<br><strong>az Elira csapata</strong>
              </p>
              <p style="margin: 0; font-size: 12px; color: #999999;">
                &copy; {year} Elira. Minden jog fenntartva.
              </p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""


# ==============================================================================
# Template: Employee Invitation
# ==============================================================================

EMPLOYEE_INVITATION_CONTENT = """
<p style="margin: 0 0 20px; font-size: 16px; color: #333333; line-height: 1.6;">
  Szia, <strong>{first_name}</strong>!
</p>

<p style="margin: 0 0 20px; font-size: 16px; color: #333333; line-height: 1.6;">
  Meghívást kaptál, hogy csatlakozz a(z) <strong>"{company_name}"</strong> csapatához az Elira platformon.
</p>

<p style="margin: 0 0 30px; font-size: 16px; color: #333333; line-height: 1.6;">
  Csapattagként hozzáférsz a cég által megvásárolt összes kurzushoz, további költség nélkül.
</p>

<!-- CTA Button -->
<table role="presentation" width="100%" cellpadding="0" cellspacing="0">
  <tr>
    <td align="center" style="padding: 20px 0;">
      <a href="{invite_url}" style="background-color: #2C3E54; color: #FFFFFF; text-decoration: none; padding: 16px 40px; border-radius: 8px; font-size: 16px; font-weight: 600; display: inline-block;">
        Meghívás elfogadása
      </a>
    </td>
  </tr>
</table>

<p style="margin: 30px 0 0; font-size: 14px; color: #666666; line-height: 1.6; text-align: center;">
  Ez a meghívó <strong>{expiry_days} napig</strong> érvényes.
</p>

<p style="margin: 20px 0 0; padding-top: 20px; border-top: 1px solid #EEEEEE; font-size: 12px; color: #999999; line-height: 1.6; text-align: center;">
  Ha a gomb nem működik, másold be ezt a linket a böngésződbe:<br>
  <a href="{invite_url}" style="color: #2C3E54; word-break: break-all;">{invite_url}</a>
</p>
"""


def render_employee_invitation(
    first_name: str,
    company_name: str,
    invite_url: str,
    expiry_days: int,
) -> tuple[str, str]:
    """Render the company employee invitation email.

    Args:
        first_name: Invited employee's first name
        company_name: Name of the inviting company
        invite_url: Registration link carrying the invite token
        expiry_days: Days until the invitation expires

    Returns:
        Tuple of (html_content, plain_text_content)
    """
    year = datetime.now().year
    content = EMPLOYEE_INVITATION_CONTENT.format(
        first_name=first_name,
        company_name=company_name,
        invite_url=invite_url,
        expiry_days=expiry_days,
    )
    html = BASE_TEMPLATE.format(title="Csapat meghívó", content=content, year=year)

    plain_text = f"""
Szia, {first_name}!

Meghívást kaptál, hogy csatlakozz a(z) "{company_name}" csapatához az Elira platformon.

Csapattagként hozzáférsz a cég által megvásárolt összes kurzushoz, további költség nélkül.

Kattints az alábbi linkre a meghívás elfogadásához:
{invite_url}

Ez a meghívó {expiry_days} napig érvényes.

Üdvözlettel,
az Elira csapata

---
© {year} Elira. Minden jog fenntartva.
"""
    return html, plain_text.strip()
