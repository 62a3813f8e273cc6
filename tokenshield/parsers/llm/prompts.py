"""Personas and instructions for each review.

Each instruction block pins the exact JSON shape the matching verdict model
in ``models.py`` parses.
"""

CODE_REVIEW_PERSONA = "You are a solidity security expert and token analyst."
WEBSITE_REVIEW_PERSONA = (
    "You are an expert crypto investigator specializing in evaluating crypto website credibility."
)
SOCIAL_REVIEW_PERSONA = (
    "You are an expert crypto investigator specializing in social media analysis of crypto projects."
)
FINAL_SCORE_PERSONA = "You are a solidity security expert and expert token investigator."

CODE_REVIEW_INSTRUCTIONS = """Review the ERC-20 contract source below for signs of a rug pull, honeypot or other scam.

Look closely at:
1. transfer / _transfer logic: hidden conditions, blacklists, max-wallet or cooldown traps.
2. Ownership: whether it is really renounced, or whether a second owner-like variable survives.
3. Any path that lets a privileged account mint new supply.
4. Withdraw, rescue, removeLiquidity or arbitrary external calls that could drain users or the pool.
5. Fees that are very high or that the owner can raise later.
6. Proxy or upgrade hooks that could swap in malicious logic.
7. Anything that blocks sells or taxes sellers far more than buyers.
8. Ignore comforting claims ("ownership renounced", "liquidity burned") unless the code proves there is no backdoor.

Then decide whether any suspicious code could reasonably be a legitimate anti-bot, anti-sniper or anti-exploit measure. If nothing is suspicious, answer true and say "code is legitimate".

Answer with JSON only, no code fences, no prose outside the object:
{
  "possible_scam": true | false,
  "reason": "2-3 sentences",
  "could_legitimately_justify_suspicious_code": true | false,
  "reason_could_be_legitimate_or_not": "2-3 sentences"
}"""

WEBSITE_REVIEW_INSTRUCTIONS = """Below is the visible text of a token project's website.

1. Judge whether the site looks credible or shows scam signals.
2. Watch for contradictions, invented partnerships, copy-pasted or sloppy writing, unrealistic promises, and missing basics such as team, roadmap or contact details.
3. Summarize the site in your own words and call out anything suspicious.

Answer with JSON only, no code fences:
{
  "possible_scam": true | false,
  "reason": "2-3 sentences",
  "summary": "short overview of the site and why it is or is not credible"
}"""

SOCIAL_REVIEW_INSTRUCTIONS = """Below are the profile stats of a token project's Twitter/X account followed by its most recent posts.

1. Judge whether the account looks credible or shows scam signals.
2. Watch for repetitive shilling, unrealistic claims, bot-like engagement, engagement far below the follower count, and young accounts with sudden follower spikes.
3. Summarize the account's behaviour in your own words (under 500 tokens).

Answer with JSON only, no code fences:
{
  "possible_scam": true | false,
  "reason": "2-3 sentences",
  "summary": "short overview of the account and its posts"
}"""

FINAL_SCORE_INSTRUCTIONS = """Below is a JSON checklist gathered for one ERC-20 token. Fields:

- token_name, token_address, token_symbol
- possible_scam / reason_possible_scam: verdict of a source code review
- could_legitimately_justify_suspicious_code / reason_could_or_couldnt_justify_suspicious_code: whether flagged code could be an honest anti-bot measure
- website_possible_scam / website_review_reason, social_possible_scam / social_review_reason: reviews of the project's site and Twitter account
- top_holder_percentage_tokens_held: share of supply held by the largest ordinary wallet (0-100)
- percentage_of_tokens_locked_or_burned: share of supply at lockers or burn addresses (0-100)
- percentage_liquidity_locked_or_burned: share of pool liquidity at lockers or burn addresses (0-100)
- liquidity_in_usd: USD value of the token's deepest pool
- has_website, has_twitter_or_discord: online presence
- is_token_sellable: result of a buy-then-sell simulation on a forked chain

Any field that is null could not be determined; do not read null as a pass or a fail.

Weigh everything together and give the token one of these scores:
"4 - Legit", "3 - Likely Legit", "2 - Iffy", "1 - Likely Scam", "0 - Scam".
A well known token with a long, reputable history should be scored "4 - Legit".

Answer with JSON only, no code fences:
{
  "token_score": "4 - Legit" | "3 - Likely Legit" | "2 - Iffy" | "1 - Likely Scam" | "0 - Scam",
  "reason": "5-7 sentences explaining the score"
}"""
