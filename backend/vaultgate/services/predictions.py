import random
from typing import Dict, Optional

GOOD_THINGS = [
    "You have incredible focus and determination",
    "Your quick thinking will be your greatest asset",
    "You notice the details everyone else misses",
    "You stay calm when the clock is ticking",
    "Your instincts for patterns are razor sharp",
    "You never give up on a locked door",
    "You read people as easily as you read codes",
]

FORTUNES = [
    "The vaults sense great potential in you. Trust your instincts and the codes will reveal themselves.",
    "A hidden sequence waits for you behind the third door. Patience will open it.",
    "Fortune favours the bold agent today. Move fast, but think faster.",
    "The numbers are already on your side. Listen to the clicks of the dial.",
]

WISHES = [
    "May luck be on your side, Agent {name}!",
    "Good luck, Agent {name}! The vaults are waiting.",
    "Crack them all, Agent {name}!",
]


def make_prediction(name: str, rng: Optional[random.Random] = None) -> Dict[str, object]:
    """Build a decorative prediction payload for ``prediction:result``."""
    rng = rng or random
    return {
        'goodThings': rng.sample(GOOD_THINGS, 2),
        'fortune': rng.choice(FORTUNES),
        'wish': rng.choice(WISHES).format(name=name),
    }
