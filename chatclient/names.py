import random, string
from typing import Optional

ADJECTIVES = (
    "accurate", "adaptable", "adventurous", "agile", "alert", "ambitious",
    "analytical", "articulate", "awesome", "bold", "brave", "bright",
    "calm", "capable", "charming", "clever", "confident", "conscious",
    "creative", "curious", "dazzling", "dedicated", "determined", "digital",
    "dynamic", "eager", "efficient", "elegant", "energetic", "excellent",
    "fantastic", "fearless", "flexible", "focused", "friendly", "futuristic",
    "generous", "gentle", "gleaming", "graceful", "great", "harmonious",
    "innovative", "insightful", "inspired", "intelligent", "intuitive",
    "jovial", "keen", "kind", "lively", "logical", "loyal", "luminous",
    "magic", "magnetic", "marvelous", "modern", "mystical", "neat",
    "noble", "optimistic", "organized", "patient", "peaceful", "perfect",
    "playful", "pleasant", "positive", "powerful", "precise", "profound",
    "prominent", "radiant", "reliable", "resilient", "resourceful", "robust",
    "savvy", "sensitive", "sharp", "shining", "sincere", "smart",
    "smooth", "sparkling", "spectacular", "speedy", "spirited", "splendid",
    "steadfast", "stellar", "strategic", "stunning", "superb", "swift",
    "talented", "technical", "thoughtful", "thriving", "tidy", "tranquil",
    "transparent", "true", "trusty", "ultimate", "unique", "united",
    "upbeat", "valiant", "vibrant", "victorious", "vigilant", "virtuous",
    "vivid", "wise", "witty", "wonderful", "zesty",
)

NOUNS = (
    "algorithm", "anchor", "artifact", "beacon", "blueprint", "bridge",
    "byte", "catalyst", "chamber", "cipher", "circuit", "cloud",
    "cluster", "comet", "compass", "console", "core", "cosmos",
    "crystal", "cube", "cursor", "data", "delta", "dimension",
    "dragon", "echo", "eclipse", "element", "engine", "entity",
    "essence", "ether", "factor", "field", "filter", "fingerprint",
    "flame", "flash", "flow", "forge", "fragment", "galaxy",
    "genesis", "glacier", "horizon", "hub", "impulse", "index",
    "infra", "input", "junction", "key", "knight", "lab",
    "laser", "legend", "light", "logic", "matrix", "memory",
    "mercury", "method", "mirror", "module", "mosaic", "nexus",
    "node", "oasis", "orb", "origin", "output", "paradigm",
    "path", "phantom", "phoenix", "pillar", "pilot", "pioneer",
    "portal", "prism", "probe", "puzzle", "quantum", "radar",
    "radius", "reactor", "relay", "relic", "research", "reserve",
    "robot", "saga", "scanner", "schema", "scope", "sector",
    "sequence", "signal", "solution", "source", "spark", "spectrum",
    "sphere", "spiral", "star", "station", "stream", "structure",
    "synth", "system", "target", "template", "terminal", "thread",
    "threshold", "titan", "token", "tower", "trace", "trail",
    "transit", "transmission", "traveler", "trigger", "unity", "universe",
    "vector", "vertex", "vortex", "wave", "zenith", "zero",
)

ALPHANUMERIC = string.ascii_lowercase + string.digits
SUFFIX_LENGTH = 16


def generate_name(length: int = SUFFIX_LENGTH, rng: Optional[random.Random] = None) -> str:
    '''
    The function returns a display name such as "swift-comet-k3x0q9a1b2c3d4e5".
        Input: length of the random part, optional random generator (for tests)
        Output: adjective-noun-random string
    '''
    rng = rng or random
    suffix = "".join(rng.choice(ALPHANUMERIC) for _ in range(max(length, 0)))
    return f"{rng.choice(ADJECTIVES)}-{rng.choice(NOUNS)}-{suffix}"
