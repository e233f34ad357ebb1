"""
Daily pending-dispute summary email.

Collects PENDING disputes (oldest first), renders a text and an HTML
digest and mails it to every admin with an email address. Each recipient
is sent independently; one failure does not stop the others.
"""
import html
import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from models import AnswerDispute, DisputeStatus, Question, User, UserRole
from services.email_service import EmailService, email_service as default_email_service

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
RULE = "─" * 55
BANNER = "═" * 55
PREVIEW_LIMIT = 20


def truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def display_name(user: Optional[User], fallback: str = "Unknown User") -> str:
    if user is None:
        return fallback
    return user.display_name or user.name or user.email or fallback


def load_pending_disputes(db: Session) -> List[AnswerDispute]:
    return (
        db.query(AnswerDispute)
        .options(
            joinedload(AnswerDispute.user),
            joinedload(AnswerDispute.question).joinedload(Question.category),
        )
        .filter(AnswerDispute.status == DisputeStatus.PENDING)
        .order_by(AnswerDispute.created_at.asc())
        .all()
    )


def summarize_by_mode(disputes: List[AnswerDispute]) -> Dict[str, int]:
    return dict(Counter(d.mode for d in disputes))


def render_text(disputes: List[AnswerDispute], by_mode: Dict[str, int]) -> str:
    lines = [
        BANNER,
        "  PENDING ANSWER DISPUTES SUMMARY",
        BANNER,
        "",
        f"There are {len(disputes)} pending answer dispute(s) that require review.",
        "",
        "SUMMARY BY MODE:",
        RULE,
    ]
    for mode, count in by_mode.items():
        lines.append(f"  {mode:<20} {count} dispute(s)")
    lines += ["", BANNER, "  DISPUTE DETAILS", BANNER, ""]

    for index, dispute in enumerate(disputes, start=1):
        question = dispute.question
        question_text = truncate(question.question, 150)
        lines += [
            f"{index}. DISPUTE ID: {dispute.id}",
            f"   {RULE}",
            f"   Created:     {dispute.created_at.strftime(TIMESTAMP_FORMAT)}",
            f"   User:        {display_name(dispute.user)}",
            f"   Email:       {dispute.user.email if dispute.user else 'N/A'}",
            f"   Mode:        {dispute.mode}",
            f"   Round:       {dispute.round}",
            f"   Category:    {question.category.name if question.category else 'Unknown'}",
            f"   Value:       ${question.value}",
            f"   {RULE}",
            "   Question:",
            *[f"      {line}" for line in question_text.split("\n")],
            "",
            f"   Correct Answer: {question.answer}",
            f"   User Answer:    {truncate(dispute.user_answer, 100)}",
            f"   System Judged:  {'✓ Correct' if dispute.system_was_correct else '✗ Incorrect'}",
            "",
        ]
    return "\n".join(lines)


def render_html(disputes: List[AnswerDispute], by_mode: Dict[str, int]) -> str:
    esc = html.escape
    parts = [
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"></head><body "
        "style=\"font-family: Arial, sans-serif; color: #333; max-width: 900px; margin: 0 auto;\">",
        "<h1>Pending Answer Disputes</h1>",
        f"<p style=\"font-size: 32px; font-weight: 700;\">{len(disputes)}</p>",
        "<h3>Summary by Mode</h3><ul>",
    ]
    for mode, count in by_mode.items():
        parts.append(f"<li>{esc(mode.replace('_', ' '))}: <strong>{count}</strong></li>")
    parts.append("</ul>")

    for index, dispute in enumerate(disputes, start=1):
        question = dispute.question
        user = dispute.user
        judged = "✓ System Judged Correct" if dispute.system_was_correct else "✗ System Judged Incorrect"
        parts.append(
            "<div style=\"border: 1px solid #e5e7eb; border-radius: 8px; padding: 16px; margin: 16px 0;\">"
            f"<strong>Dispute #{index}</strong> <small>ID: {dispute.id}</small>"
            f"<div>{dispute.created_at.strftime('%b %d, %Y %H:%M')}</div>"
            f"<p><b>User:</b> {esc(display_name(user))} ({esc(user.email if user and user.email else 'No email')})<br>"
            f"<b>Mode:</b> {esc(dispute.mode)} &middot; <b>Round:</b> {esc(dispute.round)} &middot; "
            f"<b>Category:</b> {esc(question.category.name if question.category else 'Unknown')} &middot; "
            f"<b>Value:</b> ${question.value}</p>"
            f"<p><b>Question:</b> {esc(question.question)}</p>"
            f"<p><b>Correct Answer:</b> {esc(question.answer)}<br>"
            f"<b>User Answer:</b> {esc(dispute.user_answer)}</p>"
            f"<p>{judged}</p>"
            "</div>"
        )

    parts.append(
        "<p style=\"color: #6b7280; font-size: 12px;\">This is an automated summary of pending disputes. "
        "Please review and resolve disputes in the admin panel.</p></body></html>"
    )
    return "".join(parts)


def dispute_preview(dispute: AnswerDispute) -> Dict[str, Any]:
    question = dispute.question
    return {
        "id": str(dispute.id),
        "createdAt": dispute.created_at.strftime(TIMESTAMP_FORMAT),
        "userId": str(dispute.user_id),
        "userName": display_name(dispute.user, "Unknown"),
        "userEmail": dispute.user.email if dispute.user else None,
        "mode": dispute.mode,
        "round": dispute.round,
        "category": question.category.name if question.category else None,
        "questionValue": question.value,
        "questionPreview": truncate(question.question, 80),
        "userAnswer": truncate(dispute.user_answer, 60),
        "systemWasCorrect": dispute.system_was_correct,
    }


def _summary(disputes: List[AnswerDispute], by_mode: Dict[str, int]) -> Dict[str, Any]:
    return {
        "totalDisputes": len(disputes),
        "byMode": by_mode,
        "oldestDispute": disputes[0].created_at.strftime(TIMESTAMP_FORMAT) if disputes else None,
        "newestDispute": disputes[-1].created_at.strftime(TIMESTAMP_FORMAT) if disputes else None,
    }


def send_dispute_summary(db: Session, mailer: Optional[EmailService] = None) -> Dict[str, Any]:
    mailer = mailer or default_email_service
    disputes = load_pending_disputes(db)
    pending_count = len(disputes)
    by_mode = summarize_by_mode(disputes)

    if pending_count == 0:
        return {
            "success": True,
            "pendingCount": 0,
            "message": "No pending disputes; no email sent.",
            "recipientCount": 0,
            "summary": _summary(disputes, by_mode),
            "emailStatus": {"sent": 0, "failed": 0, "recipients": []},
        }

    admins = (
        db.query(User)
        .filter(User.role == UserRole.ADMIN, User.email.isnot(None), User.email != "")
        .order_by(User.created_at.asc())
        .all()
    )
    if not admins:
        return {
            "success": True,
            "pendingCount": pending_count,
            "message": "No admin users with email addresses found; no email sent.",
            "recipientCount": 0,
            "summary": _summary(disputes, by_mode),
            "emailStatus": {"sent": 0, "failed": 0, "recipients": []},
        }

    subject = f"Pending Answer Disputes: {pending_count} outstanding"
    text_body = render_text(disputes, by_mode)
    html_body = render_html(disputes, by_mode)

    results: List[Dict[str, Any]] = []
    for admin in admins:
        sent = mailer.send_email(admin.email, subject, html_body, text_body)
        entry: Dict[str, Any] = {"email": admin.email, "success": bool(sent)}
        if not sent:
            entry["error"] = "Email delivery failed"
            logger.error(f"Failed to send dispute summary email to {admin.email}")
        results.append(entry)

    sent_count = sum(1 for r in results if r["success"])
    failed_count = len(results) - sent_count
    message = f"Sent dispute summary to {sent_count} admin(s)"
    if failed_count:
        message += f" ({failed_count} failed)"

    return {
        "success": True,
        "pendingCount": pending_count,
        "recipientCount": len(admins),
        "successfulEmails": sent_count,
        "failedEmails": failed_count,
        "message": message,
        "summary": _summary(disputes, by_mode),
        "emailStatus": {
            "sent": sent_count,
            "failed": failed_count,
            "recipients": [{"email": a.email, "name": display_name(a, "Unknown")} for a in admins],
            "results": results,
        },
        "disputes": [dispute_preview(d) for d in disputes[:PREVIEW_LIMIT]],
    }
