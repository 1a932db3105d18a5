"""
Intent selection for the assistant.

Ordered regular expressions are tried first; the first match wins and its
named groups become handler parameters. When nothing matches, every n-gram
of the message is compared with each intent's keyword phrases using
difflib, and the best ratio at or above FUZZY_CUTOFF wins.
"""
import re
from difflib import SequenceMatcher

FUZZY_CUTOFF = 0.75

FALLBACK = 'unknown'

INTENT_RULES = [
    ('help', r'^\s*(help|commands|what can you do)\b'),
    ('greeting', r'^\s*(hi|hello|hey|good (morning|afternoon|evening))\b'),
    ('generate_report', r'\b(generate|create|export|download|make)\b.*\b(?P<format>pdf|excel|xlsx|spreadsheet)\b'),
    ('search', r'\bsearch for\b\s*(?P<term>.*)$'),
    ('user_stats', r'\buser stats\b|\btop (users|people)\b'),
    ('weekly_summary', r'\bweekly summary\b'),
    ('out_of_stock', r'\bout of stock\b'),
    ('low_stock', r'\blow stock\b'),
    ('items_in_category', r'\bitems in\b\s*(?P<category>.*)$'),
    ('list_categories', r'\b(list|show|all)( the)? categories\b|^\s*categories\s*$|\bhow many categories\b'),
    ('who_took', r'\bwho (took|has|checked out)\s+(the\s+)?(?P<item>.+?)\s*\??$'),
    ('stock_of', r'\b(stock of|quantity of|stock for)\s+(the\s+)?(?P<item>.+?)\s*\??$'),
    ('recent_checkouts', r'\brecent (checkouts|activity|issues)\b|\blast checkouts\b'),
    ('top_items', r'\b(top|most (used|issued|popular)) items\b'),
    ('pending_requests', r'\bpending (requests|approvals)\b'),
    ('request_status', r'\brequest\s+(status\s+)?(#|req-)?\s*(?P<id>\d+)\b'),
    ('request_status', r'\bstatus of request\s+(#|req-)?\s*(?P<id>\d+)\b'),
    ('inventory_value', r'\b(inventory|stock|total) value\b|\bworth\b'),
    ('stock_of', r'\bhow many\s+(?P<item>.+?)(\s+(do we have|are there|are left|left|in stock))?\s*\??$'),
]

COMPILED_RULES = [(name, re.compile(pattern, re.IGNORECASE)) for name, pattern in INTENT_RULES]

INTENT_KEYWORDS = {
    'help': ['help', 'commands'],
    'greeting': ['hello', 'greetings'],
    'weekly_summary': ['weekly summary', 'summary', 'overview'],
    'out_of_stock': ['out of stock', 'depleted'],
    'low_stock': ['low stock', 'restock', 'shortage'],
    'user_stats': ['user stats', 'statistics'],
    'list_categories': ['categories'],
    'recent_checkouts': ['recent checkouts', 'checkouts'],
    'top_items': ['top items', 'popular items'],
    'pending_requests': ['pending requests', 'pending approvals'],
    'inventory_value': ['inventory value', 'valuation'],
}


def normalize(message):
    return re.sub(r'\s+', ' ', (message or '').strip().lower())


def ngrams(words, size):
    return [' '.join(words[index:index + size]) for index in range(len(words) - size + 1)]


def similarity(left, right):
    return SequenceMatcher(None, left, right).ratio()


def fuzzy_intent(message):
    """Best (intent, score) by keyword similarity, or (None, 0.0)"""
    words = re.findall(r'[a-z0-9]+', normalize(message))
    best_intent, best_score = None, 0.0
    for intent, phrases in INTENT_KEYWORDS.items():
        for phrase in phrases:
            size = len(phrase.split())
            for candidate in ngrams(words, size):
                score = similarity(candidate, phrase)
                if score > best_score:
                    best_intent, best_score = intent, score
    if best_score >= FUZZY_CUTOFF:
        return best_intent, best_score
    return None, best_score


def match_intent(message):
    """
    Pick the intent for a free-text message.

    Returns:
        (intent name, parameters dict)
    """
    text = normalize(message)
    if not text:
        return FALLBACK, {}

    for name, pattern in COMPILED_RULES:
        match = pattern.search(text)
        if match:
            params = {key: value.strip() for key, value in match.groupdict().items() if value is not None}
            return name, params

    intent, _ = fuzzy_intent(text)
    if intent:
        return intent, {}
    return FALLBACK, {}
