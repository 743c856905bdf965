"""
Built-in catalog: drill criteria, phase mapping, skill dimensions, plans
and the level ladder.

This is plain data. `load_registry` turns it (or a JSON file with the same
shape) into an immutable CriteriaRegistry.
"""

DEFAULT_CATALOG = {
    "universal_criteria": {
        "hedging": {
            "kind": "boolean",
            "fires_when": True,
            "description": 'Uses weak language: "I think", "maybe", "probably", "perhaps", "might", "sort of", "kind of", "it seems"',
        },
        "filler_phrases": {
            "kind": "count",
            "description": 'Count of filler phrases: "you know", "like", "basically", "actually", "just", "really", "honestly", "literally"',
        },
        "word_limit_met": {
            "kind": "boolean",
            "fires_when": False,
            "description": "Response stayed within the requested word/sentence limit",
        },
        "apology_detected": {
            "kind": "boolean",
            "fires_when": True,
            "description": 'Unnecessary apologizing: "sorry", "I apologize", "forgive me", self-deprecation',
        },
        "ran_long": {
            "kind": "boolean",
            "fires_when": True,
            "description": "Response significantly exceeded expected length",
        },
        "too_short": {
            "kind": "boolean",
            "fires_when": True,
            "description": "Response was too brief to be substantive",
        },
    },

    "drill_criteria": {
        "compression": {
            "core_point_captured": "Identified and stated the actual core message",
            "concise": "No extra fluff or restating of original jargon",
            "under_word_limit": "Met the specific word limit (usually 15 words)",
            "clarity": "A stranger could understand this without context",
            "jargon_removed": "Eliminated buzzwords and corporate speak",
        },
        "executive_communication": {
            "declarative_sentences": "Used declarative statements, not questions or hedged phrasing",
            "authority_tone": "Sounded decisive and confident, not tentative",
            "clear_position": "Took a clear stance, not vague or noncommittal",
            "appropriate_length": "3-5 sentences as requested, not rambling",
            "defensive_language": "Used defensive or justifying language",
            "blame_shifting": "Blamed others or external factors",
            "solution_oriented": "Focused on path forward, not just the problem",
        },
        "problem_solving": {
            "decision_clear": "Decision was stated clearly and actionably",
            "rationale_supports_decision": "The reasoning actually supports the stated decision",
            "risk_realistic": "Risk identified is specific and plausible, not hand-wavy",
            "mitigation_specific": "Mitigation is concrete, not vague",
            "structure_followed": "Used the Decision/Rationale/Risk/Mitigation structure",
            "tradeoff_acknowledged": "Explicitly named what they're trading off",
            "avoided_analysis_paralysis": "Made a call instead of asking for more information",
            "considered_stakeholders": "Thought about impact on relevant parties",
        },
        "writing_precision": {
            "target_dimension_improved": "Actually improved the requested dimension (clarity/brevity/impact)",
            "tighter_than_original": "Result is more concise than the source material",
            "meaning_preserved": "Core meaning wasn't lost in the edit",
            "stronger_verbs": "Used active, strong verbs instead of passive/weak ones",
            "passive_voice_reduced": "Reduced passive constructions",
            "redundancy_eliminated": "Removed redundant words and phrases",
        },
        "story_compression": {
            "star_structure": "Used Situation/Task/Action/Result structure",
            "situation_concise": "Situation was 1-2 sentences, not a novel",
            "action_specific": "Actions were specific to what THEY did, not the team",
            "result_measurable": "Result included metrics or concrete outcome",
            "under_60_seconds": "Response would fit in ~60 seconds spoken",
            "i_not_we": 'Used "I" to describe their contribution, not hiding behind "we"',
            "relevant_to_role": "Story demonstrates skills relevant to professional context",
        },
        "opener": {
            "present_past_future": "Used Present -> Past -> Future arc",
            "no_life_story": "Avoided childhood, irrelevant history, rambling",
            "role_relevant": "Content connects to the type of role they'd interview for",
            "strong_ending": "Ended with forward momentum, not trailing off",
            "appropriate_length": "30-45 seconds spoken, not too short or long",
            "professional_focus": "Kept focus on professional identity, not personal",
            "hook_included": "Included something memorable or distinctive",
        },
        "curveball_recovery": {
            "direct_acknowledgment": "Addressed the hard part directly, no dodging",
            "authentic": "Sounded human and honest, not scripted",
            "pivot_smooth": "Transition to strength felt natural, not forced",
            "humble_brag_avoided": "Didn't disguise a strength as a weakness",
            "ownership": "Took responsibility instead of blaming circumstances",
            "growth_demonstrated": "Showed what they learned or how they improved",
            "brevity": "Didn't over-explain or dwell on the negative",
        },
        "closing_questions": {
            "insightful": "Questions show thought about the role/company",
            "not_googleable": "Couldn't find the answer on the company website",
            "no_salary_benefits": "Avoided premature salary/benefits questions",
            "thought_provoking": "At least one question makes the interviewer think",
            "genuine_interest": "Questions signal real curiosity, not box-checking",
            "forward_looking": "Questions about future, growth, challenges",
            "appropriate_number": "Asked 2-3 questions, not too few or too many",
        },
        "unexpected_question": {
            "started_strong": "First sentence was substantive, no stalling",
            "clear_position": "Stated a clear take, not waffling",
            "reason_supported": "Gave a reason that actually supports the position",
            "no_stalling": "Avoided \"that's a great question\" or similar filler",
            "acknowledge_position_reason": "Used the Acknowledge/Position/Reason structure",
            "composure": "Response felt calm, not panicked or rushed",
        },
        "impromptu_structure": {
            "prep_structure": "Used Point/Reason/Example/Point structure",
            "point_clear": "Opening point was clear and direct",
            "example_specific": "Example was concrete, not generic",
            "point_restated": "Closed by restating the main point",
            "logical_flow": "Ideas connected logically",
            "appropriate_length": "Response was ~60 seconds spoken",
            "example_relevant": "Example actually supported the point",
        },
        "defending_position": {
            "acknowledged_concern": "Recognized the other person's point",
            "held_position": "Maintained their stance, didn't fold",
            "non_defensive": "Avoided defensive or combative language",
            "offered_concession": "Made appropriate concession or clarification",
            "calm_tone": "Response felt measured, not reactive",
            "didnt_over_explain": "Made the point without excessive justification",
            "bridge_used": "Connected acknowledgment back to their position smoothly",
        },
        "graceful_unknown": {
            "direct_admission": "Clearly stated they don't know",
            "no_waffling": "Didn't pretend or guess",
            "offered_alternative": "Shared what they do know or how they'd find out",
            "confident_delivery": "Sounded confident despite the gap",
            "forward_action": "Ended with a concrete next step",
            "no_excessive_apology": "Didn't over-apologize for the gap",
            "credibility_maintained": "Still came across as competent",
        },
        "feedback_delivery": {
            "direct_opening": "First sentence stated the issue, no burying",
            "specific_behavior": "Referenced specific behavior, not character",
            "impact_stated": "Explained the impact of the behavior",
            "no_sandwich": "Avoided false praise wrapping",
            "forward_focused": "Discussed what needs to change",
            "respect_maintained": "Firm but not demeaning",
            "brevity": "Made the point without over-explaining",
            "actionable": "Clear on what change looks like",
        },
        "holding_the_line": {
            "stayed_calm": "Didn't escalate or match emotional intensity",
            "position_maintained": "Held the original position",
            "empathy_shown": "Acknowledged the other person's feelings",
            "didnt_cave": "Didn't give in to avoid discomfort",
            "broken_record": "Restated position without new justifications",
            "no_new_arguments": "Didn't get drawn into debate",
            "boundary_clear": "The line being held was clear",
        },
        "clean_no": {
            "no_stated_clearly": 'The "no" was unambiguous',
            "no_excessive_apology": "Didn't over-apologize",
            "reason_brief": "Gave reason in one sentence max, or none",
            "no_false_hope": "Didn't leave door open they don't intend to use",
            "alternative_offered": "Offered alternative if appropriate",
            "relationship_preserved": "Maintained respect and warmth",
            "brevity": "Short response, not defensive explanation",
        },
        "bad_news_delivery": {
            "lead_with_news": "Bad news stated in first sentence",
            "no_buried_lead": "Didn't hide the news in the middle",
            "owned_it": "Took appropriate responsibility",
            "next_steps_clear": "Explained what happens now",
            "empathy_appropriate": "Acknowledged impact without wallowing",
            "no_excessive_softening": "Didn't dilute the message",
            "composure": "Delivered with calm, not anxiety",
            "solution_oriented": "Focused on path forward",
        },
        "negotiation_anchor": {
            "anchor_stated": "Opened with a specific number or position",
            "confident_delivery": "Stated anchor without hedging",
            "justified_briefly": "Gave brief rationale for the anchor",
            "no_immediate_concession": "Didn't undercut their own anchor",
            "silence_comfort": "Let the anchor land without filling silence",
            "ambitious_but_reasonable": "Anchor was strong but not absurd",
        },
        "negotiation_pushback": {
            "didnt_fold": "Didn't immediately concede",
            "asked_questions": "Probed to understand the objection",
            "reframed_value": "Restated the value being offered",
            "silence_used": "Used silence instead of rushing to fill",
            "small_concession": "If conceding, gave small movement only",
            "something_for_something": "Any concession tied to getting something back",
            "maintained_composure": "Stayed calm under pressure",
        },
        "managing_up": {
            "bottom_line_first": "Led with the key point, not background",
            "options_presented": "Gave choices, not just problems",
            "recommendation_clear": "Stated what they recommend",
            "brevity": "Respected the senior person's time",
            "no_excessive_detail": "Didn't bury them in minutiae",
            "proactive": "Anticipated questions or concerns",
            "accountability_shown": "Took ownership of their area",
        },
        "status_update": {
            "headline_first": "Led with the most important thing",
            "on_track_or_not": "Clearly stated if on track",
            "blockers_named": "Identified blockers if any",
            "ask_clear": "If asking for something, it was specific",
            "no_rambling": "Tight, scannable update",
            "metrics_included": "Included relevant numbers if applicable",
            "forward_looking": "Mentioned next milestone or step",
        },
        "escalation": {
            "issue_stated_clearly": "The problem was clear in first sentence",
            "no_blame": "Focused on situation, not finger-pointing",
            "impact_quantified": "Stated the impact or risk",
            "options_presented": "Gave possible paths forward",
            "recommendation_included": "Stated what they'd recommend",
            "urgency_appropriate": "Conveyed urgency without panic",
            "ownership_taken": "Took responsibility for their part",
        },
    },

    # Drill phase tag -> drill type; null marks phases that are never scored
    "phase_mapping": {
        "Compression": "compression",
        "Executive Communication": "executive_communication",
        "Problem-Solving": "problem_solving",
        "Writing Precision": "writing_precision",
        "Story Compression": "story_compression",
        "The Opener": "opener",
        "Curveball Recovery": "curveball_recovery",
        "Closing Strong": "closing_questions",
        "Unexpected Question": "unexpected_question",
        "Impromptu Structure": "impromptu_structure",
        "Defending Your Position": "defending_position",
        "Graceful I Don't Know": "graceful_unknown",
        "The Direct Open": "feedback_delivery",
        "Holding the Line": "holding_the_line",
        "The Clean No": "clean_no",
        "Bad News Delivery": "bad_news_delivery",
        "Negotiation Anchor": "negotiation_anchor",
        "Negotiation Pushback": "negotiation_pushback",
        "Managing Up": "managing_up",
        "Status Update": "status_update",
        "Escalation": "escalation",
        "Session Complete": None,
        "Reflection": None,
    },

    "dimensions": {
        "clarity": {
            "label": "Clarity",
            "category": "communication",
            "description": "Communicating ideas so anyone can understand them without context",
            "target": "Strip jargon, capture the core point, make it obvious",
            "positive": ["core_point_captured", "jargon_removed", "meaning_preserved", "clarity"],
            "negative": [],
            "tips": [
                'Ask: "Would someone outside my team understand this?"',
                "Replace every acronym and buzzword with plain language",
                "State the core point in the first sentence",
            ],
        },
        "brevity": {
            "label": "Brevity",
            "category": "communication",
            "description": "Saying what needs to be said in fewer words",
            "target": "Hit the word limit, cut the fluff, respect the clock",
            "positive": [
                "word_limit_met", "concise", "under_word_limit", "brevity",
                "under_60_seconds", "appropriate_length", "no_rambling",
            ],
            "negative": ["too_short", "ran_long"],
            "tips": [
                "Write your response, then cut 20%",
                "One idea per sentence, no stacking",
                "If you can remove a word without losing meaning, remove it",
            ],
        },
        "authority": {
            "label": "Authority",
            "category": "presence",
            "description": "Speaking with confidence and conviction, not hedging",
            "target": 'Sound decisive: no "I think", "maybe", or "probably"',
            "positive": ["declarative_sentences", "authority_tone", "clear_position", "confident_delivery"],
            "negative": ["hedging", "defensive_language"],
            "tips": [
                'Delete "I think" and "I believe" and just state it',
                'Replace "We should maybe consider..." with "We should..."',
                "Take a position, even if you acknowledge tradeoffs",
            ],
        },
        "structure": {
            "label": "Structure",
            "category": "thinking",
            "description": "Organizing thoughts in a clear, followable framework",
            "target": "Use a recognizable structure (STAR, PREP, etc.)",
            "positive": [
                "star_structure", "prep_structure", "structure_followed",
                "logical_flow", "present_past_future", "acknowledge_position_reason",
            ],
            "negative": [],
            "tips": [
                "Pick a framework before you start (STAR, PREP, Problem then Solution)",
                'Signal your structure: "Three things..." or "First... Second..."',
                "End where you started and restate your main point",
            ],
        },
        "composure": {
            "label": "Composure",
            "category": "presence",
            "description": "Staying calm and measured under pressure",
            "target": "No defensiveness, no panic, no over-explaining",
            "positive": ["calm_tone", "composure", "stayed_calm", "non_defensive", "maintained_composure"],
            "negative": [],
            "tips": [
                "Pause before responding; silence is okay",
                "Acknowledge the challenge, then respond",
                "Shorter responses often sound calmer",
            ],
        },
        "directness": {
            "label": "Directness",
            "category": "communication",
            "description": "Leading with the point, not burying it",
            "target": "Main point in sentence one, no warm-up",
            "positive": [
                "direct_opening", "lead_with_news", "headline_first", "started_strong",
                "bottom_line_first", "no_stalling", "direct_admission", "no_buried_lead",
            ],
            "negative": [],
            "tips": [
                "Write your response, then move the last sentence to the top",
                'Delete throat-clearing phrases: "So basically...", "I wanted to..."',
                "Bad news goes first; don't make them wait for it",
            ],
        },
        "ownership": {
            "label": "Ownership",
            "category": "character",
            "description": "Taking responsibility and showing accountability",
            "target": "Own mistakes, bring solutions, no finger-pointing",
            "positive": ["ownership", "owned_it", "accountability_shown", "proactive", "no_blame"],
            "negative": ["blame_shifting"],
            "tips": [
                'Replace "We couldn\'t because..." with "I should have..."',
                "Always pair a problem with a proposed solution",
                'Say "I" not "we" when describing your contribution',
            ],
        },
        "authenticity": {
            "label": "Authenticity",
            "category": "character",
            "description": "Sounding genuine without over-apologizing or humble-bragging",
            "target": "Be real: admit gaps honestly, share wins without disclaimers",
            "positive": ["authentic", "genuine_interest", "no_excessive_apology", "humble_brag_avoided"],
            "negative": [],
            "tips": [
                "One apology max, then move forward",
                'State your win directly: "I led..." not "I was lucky to..."',
                "If you don't know, say so, then pivot to how you'd find out",
            ],
        },
        "specificity": {
            "label": "Specificity",
            "category": "thinking",
            "description": "Being concrete and precise instead of vague or generic",
            "target": "Use real examples, actual numbers, specific actions",
            "positive": [
                "specific_behavior", "action_specific", "example_specific", "result_measurable",
                "metrics_included", "impact_quantified", "example_relevant",
            ],
            "negative": [],
            "tips": [
                'Replace "improved performance" with "reduced errors by 30%"',
                'Name the specific action YOU took, not what "the team" did',
                "If you can't remember the exact number, estimate and say so",
            ],
        },
        "solution_focus": {
            "label": "Solution Focus",
            "category": "thinking",
            "description": "Bringing options and recommendations, not just problems",
            "target": "Every problem comes with at least one proposed solution",
            "positive": [
                "solution_oriented", "options_presented", "recommendation_clear",
                "recommendation_included", "forward_focused", "forward_action",
                "forward_looking", "next_steps_clear", "offered_alternative",
            ],
            "negative": [],
            "tips": [
                "Before raising a problem, draft 2-3 possible solutions",
                'Lead with your recommendation: "I suggest X because..."',
                "End with a clear next step",
            ],
        },
        "empathy": {
            "label": "Empathy",
            "category": "character",
            "description": "Acknowledging others' perspectives and maintaining relationships",
            "target": "Show you understand their position before stating yours",
            "positive": [
                "acknowledged_concern", "empathy_shown", "empathy_appropriate",
                "relationship_preserved", "respect_maintained",
            ],
            "negative": [],
            "tips": [
                'Start tough conversations with "I understand this is difficult..."',
                "Name the other person's likely concern before addressing it",
                "You can be direct and kind at the same time",
            ],
        },
    },

    # Ordered lowest to highest; position is the tier rank
    "plans": [
        {"key": "free", "label": "Free", "daily_exchanges": 15, "max_level": 2},
        {"key": "pro", "label": "Pro", "daily_exchanges": 40, "max_level": 4},
        {"key": "unlimited", "label": "Unlimited", "daily_exchanges": 100, "max_level": 5},
    ],

    "levels": {
        # exchanges needed at a level to reach the next; null = top of the ladder
        "thresholds": {"1": 10, "2": 15, "3": 20, "4": 30, "5": None},
        "max_level": 5,
        "messages": {
            "2": "Scenarios will now include competing priorities and multiple stakeholders.",
            "3": "Scenarios will now be ambiguous with no clear right answer.",
            "4": "Scenarios will now involve high stakes and incomplete information.",
            "5": "Scenarios will now challenge your core values. Every choice has real cost.",
        },
        "default_message": "You've reached Level {level}.",
        "cap_message": "Upgrade your plan to unlock higher levels.",
    },
}
