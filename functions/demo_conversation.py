#!/usr/bin/env python3
"""Demo script to play a full QuoteDesk conversation locally.

This script:
1. Starts a conversation with the greeting
2. Feeds a scripted customer through the conversation engine
3. Prints each exchange and the final estimate as JSON

Remote extraction, estimate review and lead delivery are used only when
the environment enables them (see config/settings.py).

Usage:
    cd functions
    python demo_conversation.py
"""

import asyncio
import json
import sys
from typing import List

import structlog

from config.settings import settings
from services.conversation_service import ConversationEngine, TurnResult
from utils.conversation_logger import configure_logging

logger = structlog.get_logger()

SCRIPTED_CUSTOMER: List[str] = [
    "Hi, I'm looking to get a new patio laid",
    "It's about 10m by 8m",
    "Indian sandstone please",
    "The side gate is too narrow for a digger",
    "Yes, there's a driveway",
    "Fairly flat",
    "Yes, we need to remove the old patio",
    "My name is Jane Smith",
    "07700 900123",
    "jane.smith@example.com",
    "Around £15k",
    "SL4 1AA",
]


async def run_demo_conversation() -> TurnResult:
    """Run the scripted conversation and return the final turn."""
    engine = ConversationEngine.from_settings()

    turn = engine.start_conversation()
    print(f"\nAGENT: {turn.reply}")

    for utterance in SCRIPTED_CUSTOMER:
        print(f"\nCUSTOMER: {utterance}")
        turn = await engine.process_turn(turn.state, utterance)
        print(f"AGENT: {turn.reply}")
        if turn.quick_replies:
            print("       options: " + " | ".join(reply.text for reply in turn.quick_replies))
        if turn.estimate is not None:
            break

    if turn.estimate is None:
        logger.warning("demo_ended_without_estimate", completeness=turn.state.completeness)
        return turn

    print("\n" + json.dumps(turn.estimate.model_dump(mode="json"), indent=2, ensure_ascii=False))
    return turn


if __name__ == "__main__":
    configure_logging(settings.log_level)
    try:
        result = asyncio.run(run_demo_conversation())
    except KeyboardInterrupt:
        sys.exit(130)
    sys.exit(0 if result.estimate is not None else 1)
