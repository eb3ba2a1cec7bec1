CRISIS_LINES = """\
If you are in immediate danger, please reach out now:
- Emergency services: 999
- Samaritans (24/7, free): 116 123
- LGBT+ Switchboard: 0300 330 0630
- Text SHOUT to 85258 (24/7 crisis text line)"""

HONEST_LIMITATION_MESSAGE = """\
I want to be honest with you: I don't have enough verified information to \
answer this properly, and I would rather not guess about something this \
important.

For {topic_label}, these trusted sources can give you accurate, up-to-date help:
{sources}

Your feedback on this conversation helps us fill gaps like this one."""

EMERGENCY_LIMITATION_MESSAGE = """\
I don't have enough verified information to answer everything you have asked, \
but your safety matters most right now.

{crisis_lines}

You don't have to go through this alone."""

FALLBACK_MESSAGE = """\
I'm sorry, something went wrong on our side and I can't give you a proper \
answer right now. Please try again in a moment.

If you need support urgently, call Samaritans free on 116 123 at any time, \
or 999 if you are in immediate danger."""

POLISH_MESSAGE_PROMPT = """\
You are editing a reply written by a support assistant for LGBTQ+ people, \
with a focus on Black LGBTQ+ communities in the UK. The reply has already \
been approved: the journey stage, the resources and the information in it \
are final.

Your only job is to make the wording warmer and easier to read.

Rules:
- Keep every resource name, phone number, website and fact exactly as given.
- Do NOT add new resources, services, statistics or advice.
- Do NOT remove any resource or any safety information.
- Keep the same overall structure and roughly the same length.
- Be affirming and non-judgemental; do not make assumptions about identity.

Respond using British English throughout.
"""
