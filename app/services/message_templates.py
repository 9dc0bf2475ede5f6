"""Default message templates per language/type/channel, per-wedding seeding and lookup."""
from sqlalchemy.orm import Session

from app.models.family import Channel
from app.models.template import MessageTemplate, TemplateType
from app.models.wedding import LANGUAGES, Wedding

# Per-language phrases; bodies for every channel are assembled from these
_PHRASES = {
    "ES": {
        "dear": "Estimada familia {{familyName}},",
        "hi": "¡Hola {{familyName}}!",
        "invite": "Nos complace invitarles a celebrar nuestro matrimonio:",
        "remind": "Este es un recordatorio amable para que confirme su asistencia a nuestra boda:",
        "date": "Fecha", "time": "Hora", "place": "Ubicación",
        "confirm_by": "Por favor, confirme su asistencia antes del {{rsvpCutoffDate}}:",
        "confirm": "Confirmar asistencia",
        "closing": "Con cariño,",
        "invitation_subject": "¡Estamos emocionados de compartir nuestro gran día!",
        "reminder_subject": "Recordatorio: ¡No olvides confirmar tu asistencia!",
        "wa_invitation_subject": "Invitación a nuestra boda",
        "wa_reminder_subject": "Recordatorio: Confirma tu asistencia",
        "sms_invitation": "Hola {{familyName}}, te invitamos a nuestra boda el {{weddingDate}} en {{location}}. Confirma aquí: {{magicLink}}",
        "sms_reminder": "Recordatorio: Confirma tu asistencia antes del {{rsvpCutoffDate}}. {{magicLink}}",
    },
    "EN": {
        "dear": "Dear {{familyName}},",
        "hi": "Hi {{familyName}}!",
        "invite": "We are delighted to invite you to celebrate our marriage:",
        "remind": "This is a friendly reminder to confirm your attendance at our wedding:",
        "date": "Date", "time": "Time", "place": "Location",
        "confirm_by": "Please confirm your attendance by {{rsvpCutoffDate}}:",
        "confirm": "Confirm Attendance",
        "closing": "With love,",
        "invitation_subject": "You're invited to celebrate our wedding!",
        "reminder_subject": "Reminder: Please confirm your attendance",
        "wa_invitation_subject": "Wedding Invitation",
        "wa_reminder_subject": "Reminder: Confirm your attendance",
        "sms_invitation": "Hi {{familyName}}, you're invited to our wedding on {{weddingDate}} at {{location}}. RSVP here: {{magicLink}}",
        "sms_reminder": "Reminder: Please confirm by {{rsvpCutoffDate}}. {{magicLink}}",
    },
    "FR": {
        "dear": "Chère famille {{familyName}},",
        "hi": "Bonjour {{familyName}} !",
        "invite": "Nous avons le plaisir de vous inviter à célébrer notre mariage :",
        "remind": "Petit rappel pour confirmer votre présence à notre mariage :",
        "date": "Date", "time": "Heure", "place": "Lieu",
        "confirm_by": "Merci de confirmer votre présence avant le {{rsvpCutoffDate}} :",
        "confirm": "Confirmer ma présence",
        "closing": "Avec amour,",
        "invitation_subject": "Vous êtes invités à célébrer notre mariage !",
        "reminder_subject": "Rappel : Veuillez confirmer votre présence",
        "wa_invitation_subject": "Invitation à notre mariage",
        "wa_reminder_subject": "Rappel : Confirmez votre présence",
        "sms_invitation": "Bonjour {{familyName}}, vous êtes invités à notre mariage le {{weddingDate}} à {{location}}. Confirmez ici : {{magicLink}}",
        "sms_reminder": "Rappel : Veuillez confirmer avant le {{rsvpCutoffDate}}. {{magicLink}}",
    },
    "IT": {
        "dear": "Cara famiglia {{familyName}},",
        "hi": "Ciao {{familyName}}!",
        "invite": "Siamo felici di invitarvi a celebrare il nostro matrimonio:",
        "remind": "Un promemoria per confermare la vostra partecipazione al nostro matrimonio:",
        "date": "Data", "time": "Ora", "place": "Luogo",
        "confirm_by": "Vi preghiamo di confermare entro il {{rsvpCutoffDate}}:",
        "confirm": "Conferma partecipazione",
        "closing": "Con affetto,",
        "invitation_subject": "Siete invitati a celebrare il nostro matrimonio!",
        "reminder_subject": "Promemoria: Confermate la vostra partecipazione",
        "wa_invitation_subject": "Invito al nostro matrimonio",
        "wa_reminder_subject": "Promemoria: Confermate la vostra partecipazione",
        "sms_invitation": "Ciao {{familyName}}, siete invitati al nostro matrimonio il {{weddingDate}} a {{location}}. Confermate qui: {{magicLink}}",
        "sms_reminder": "Promemoria: Confermate entro il {{rsvpCutoffDate}}. {{magicLink}}",
    },
    "DE": {
        "dear": "Liebe Familie {{familyName}},",
        "hi": "Hallo {{familyName}}!",
        "invite": "Wir freuen uns, euch zu unserer Hochzeit einzuladen:",
        "remind": "Eine freundliche Erinnerung, eure Teilnahme an unserer Hochzeit zu bestätigen:",
        "date": "Datum", "time": "Uhrzeit", "place": "Ort",
        "confirm_by": "Bitte bestätigt eure Teilnahme bis {{rsvpCutoffDate}}:",
        "confirm": "Teilnahme bestätigen",
        "closing": "In Liebe,",
        "invitation_subject": "Ihr seid zu unserer Hochzeit eingeladen!",
        "reminder_subject": "Erinnerung: Bitte bestätigt eure Teilnahme",
        "wa_invitation_subject": "Einladung zu unserer Hochzeit",
        "wa_reminder_subject": "Erinnerung: Bestätigt eure Teilnahme",
        "sms_invitation": "Hallo {{familyName}}, ihr seid zu unserer Hochzeit am {{weddingDate}} in {{location}} eingeladen. Bestätigt hier: {{magicLink}}",
        "sms_reminder": "Erinnerung: Bestätigt bis {{rsvpCutoffDate}}. {{magicLink}}",
    },
}

# Save-the-date copy: announces the date ahead of the formal invitation
_SAVE_THE_DATE = {
    "ES": {
        "subject": "¡Reserva la fecha!",
        "lead": "¡Reserva la fecha! Nos casamos:",
        "follows": "La invitación formal llegará pronto.",
        "sms": "¡Reserva la fecha! {{coupleNames}} se casan el {{weddingDate}} en {{location}}. Más información: {{magicLink}}",
    },
    "EN": {
        "subject": "Save the date!",
        "lead": "Save the date! We are getting married:",
        "follows": "A formal invitation will follow.",
        "sms": "Save the date! {{coupleNames}} are getting married on {{weddingDate}} at {{location}}. More: {{magicLink}}",
    },
    "FR": {
        "subject": "Réservez la date !",
        "lead": "Réservez la date ! Nous nous marions :",
        "follows": "L'invitation officielle suivra.",
        "sms": "Réservez la date ! {{coupleNames}} se marient le {{weddingDate}} à {{location}}. Plus d'infos : {{magicLink}}",
    },
    "IT": {
        "subject": "Segnate la data!",
        "lead": "Segnate la data! Ci sposiamo:",
        "follows": "Seguirà l'invito ufficiale.",
        "sms": "Segnate la data! {{coupleNames}} si sposano il {{weddingDate}} a {{location}}. Info: {{magicLink}}",
    },
    "DE": {
        "subject": "Save the Date!",
        "lead": "Merkt euch den Termin! Wir heiraten:",
        "follows": "Die offizielle Einladung folgt.",
        "sms": "Save the Date! {{coupleNames}} heiraten am {{weddingDate}} in {{location}}. Mehr: {{magicLink}}",
    },
}

# Seeded for every wedding; SAVE_THE_DATE only once the wedding enables it
TEMPLATE_TYPES = (TemplateType.INVITATION, TemplateType.REMINDER)


def _email_body(p: dict, lead: str) -> str:
    return "\n".join([
        p["dear"],
        "",
        p[lead],
        "",
        "**{{coupleNames}}**",
        "",
        f"📅 **{p['date']}:** {{{{weddingDate}}}}",
        f"⏰ **{p['time']}:** {{{{weddingTime}}}}",
        f"📍 **{p['place']}:** {{{{location}}}}",
        "",
        p["confirm_by"],
        "",
        f"[{p['confirm']}]( {{{{magicLink}}}} )",
        "",
        p["closing"],
        "{{coupleNames}}",
    ])


def _whatsapp_body(p: dict, lead: str) -> str:
    return "\n".join([
        p["hi"],
        "",
        p[lead],
        "{{coupleNames}}",
        "",
        "📅 {{weddingDate}}",
        "⏰ {{weddingTime}}",
        "📍 {{location}}",
        "",
        p["confirm_by"] + " {{magicLink}}",
    ])


def _save_the_date_body(p: dict, s: dict, channel: Channel) -> str:
    if channel == Channel.WHATSAPP:
        return "\n".join([
            p["hi"],
            "",
            s["lead"],
            "{{coupleNames}}",
            "",
            "📅 {{weddingDate}}",
            "📍 {{location}}",
            "",
            s["follows"],
            "{{magicLink}}",
        ])
    return "\n".join([
        p["dear"],
        "",
        s["lead"],
        "",
        "**{{coupleNames}}**",
        "",
        f"📅 **{p['date']}:** {{{{weddingDate}}}}",
        f"📍 **{p['place']}:** {{{{location}}}}",
        "",
        s["follows"],
        "",
        "{{magicLink}}",
        "",
        p["closing"],
        "{{coupleNames}}",
    ])


def get_default_template(language: str, template_type: TemplateType, channel: Channel) -> dict[str, str]:
    """{subject, body} for one language/type/channel; unknown languages fall back to ES."""
    p = _PHRASES.get(language, _PHRASES["ES"])
    if template_type == TemplateType.SAVE_THE_DATE:
        s = _SAVE_THE_DATE.get(language, _SAVE_THE_DATE["ES"])
        if channel == Channel.SMS:
            return {"subject": s["subject"], "body": s["sms"]}
        return {"subject": s["subject"], "body": _save_the_date_body(p, s, channel)}
    kind = "invitation" if template_type == TemplateType.INVITATION else "reminder"
    lead = "invite" if kind == "invitation" else "remind"
    if channel == Channel.EMAIL:
        return {"subject": p[f"{kind}_subject"], "body": _email_body(p, lead)}
    if channel == Channel.WHATSAPP:
        return {"subject": p[f"wa_{kind}_subject"], "body": _whatsapp_body(p, lead)}
    return {"subject": p[f"{kind}_subject"], "body": p[f"sms_{kind}"]}


def seed_templates_for_wedding(db: Session, wedding_id: int) -> int:
    """Create any missing default templates (languages x types x channels). Returns how many were added."""
    existing = {
        (t.type, t.language, t.channel)
        for t in db.query(MessageTemplate).filter(MessageTemplate.wedding_id == wedding_id).all()
    }
    types = TEMPLATE_TYPES
    wedding = db.query(Wedding).filter(Wedding.id == wedding_id).first()
    if wedding is not None and wedding.save_the_date_enabled:
        types = types + (TemplateType.SAVE_THE_DATE,)
    added = 0
    for language in LANGUAGES:
        for template_type in types:
            for channel in Channel:
                if (template_type, language, channel) in existing:
                    continue
                default = get_default_template(language, template_type, channel)
                db.add(
                    MessageTemplate(
                        wedding_id=wedding_id,
                        type=template_type,
                        language=language,
                        channel=channel,
                        subject=default["subject"],
                        body=default["body"],
                    )
                )
                added += 1
    db.flush()
    return added


def get_template_for(
    db: Session, wedding_id: int, template_type: TemplateType, language: str, channel: Channel
) -> dict[str, str | None]:
    """The wedding's stored template, or the built-in default when none exists."""
    row = (
        db.query(MessageTemplate)
        .filter(
            MessageTemplate.wedding_id == wedding_id,
            MessageTemplate.type == template_type,
            MessageTemplate.language == language,
            MessageTemplate.channel == channel,
        )
        .first()
    )
    if row:
        return {
            "subject": row.subject,
            "body": row.body,
            "image_url": row.image_url,
            "content_template_id": row.content_template_id,
        }
    default = get_default_template(language, template_type, channel)
    return {**default, "image_url": None, "content_template_id": None}
