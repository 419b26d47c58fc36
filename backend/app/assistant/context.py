"""Read-only text snapshot of a user's metrics handed to the assistant."""

from __future__ import annotations

from ..services.metrics import list_active_metrics

NO_METRICS_TEXT = "No metrics configured yet."


def format_value(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def build_metrics_context(user_id: str | None, entry_limit: int = 5) -> str:
    """One line per active metric, newest metric first."""

    lines: list[str] = []
    for snapshot in list_active_metrics(user_id, entry_limit):
        metric = snapshot.metric
        if snapshot.entries:
            latest = format_value(snapshot.entries[0].value)
            if metric.unit:
                latest = f"{latest} {metric.unit}"
        else:
            latest = "No data"
        lines.append(f"- {metric.name} ({metric.type}): {latest}")
    return "\n".join(lines)


def build_system_prompt(metrics_context: str) -> str:
    return (
        "You are LifeOS AI, a personal life assistant. You help users track and "
        "understand their life metrics, health data, finances, and workflows.\n\n"
        "The user has the following metrics:\n"
        f"{metrics_context or NO_METRICS_TEXT}\n\n"
        "Be helpful, concise, and actionable. When discussing metrics, reference "
        "their actual data. Suggest insights and patterns when possible."
    )


def build_fallback_reply(metrics_context: str) -> str:
    """Reply surfaced when no chat-completion credential is configured."""

    summary = metrics_context or (
        "You haven't set up any metrics yet. Head to the Metrics page to create some!"
    )
    return (
        "I'm your LifeOS AI assistant. I can help you with your metrics, health data, "
        "finances, and workflows.\n\n"
        "However, the OpenAI API key is not configured yet. To enable AI responses, "
        "add your `OPENAI_API_KEY` to the environment variables.\n\n"
        "In the meantime, here's what I can see about your data:\n"
        f"{summary}"
    )
