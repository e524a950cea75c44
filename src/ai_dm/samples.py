"""Bundled sample content: a small tavern world and the default DM persona.

``create_sample_world`` builds a fresh WorldState on every call, so tests
and REPL sessions never share mutable state.
"""

from __future__ import annotations

from ai_dm.dm.prompts import DEFAULT_DM_SYSTEM_PROMPT
from ai_dm.models.persona import DMPersona, VoiceProfile
from ai_dm.models.world import (
    AbilityScores,
    AmbianceProfile,
    CreatureEntity,
    CreatureStats,
    HitPoints,
    ItemEntity,
    Lighting,
    Location,
    LocationConnection,
    LoreEntry,
    Mood,
    Noise,
    NPCEntity,
    PersonalityProfile,
    WorldState,
)


SAMPLE_WORLD_ID = "rusty-flagon"
SAMPLE_STARTING_LOCATION = "flagon_common_room"


DEFAULT_PERSONA = DMPersona(
    id="classic-dm",
    name="The Classic DM",
    system_prompt=DEFAULT_DM_SYSTEM_PROMPT,
    voice=VoiceProfile(verbosity="moderate", formality="moderate", humor_frequency=0.3),
    catchphrases=("Roll for it.", "What do you do?"),
)


def create_sample_world() -> WorldState:
    """Build the Rusty Flagon world: a roadside tavern, its cellar and the road outside."""
    locations = {
        "flagon_common_room": Location(
            id="flagon_common_room",
            name="The Rusty Flagon - Common Room",
            description=(
                "A low-beamed taproom warmed by a crackling hearth. Mismatched tables crowd "
                "the floor, and a scarred oak bar runs along the north wall beneath a rack "
                "of pewter flagons."
            ),
            connections=[
                LocationConnection(
                    target_id="flagon_cellar",
                    direction="down",
                    description="A trapdoor behind the bar opens onto steep wooden steps.",
                ),
                LocationConnection(
                    target_id="millford_road",
                    direction="out",
                    description="The front door lets out onto the road.",
                ),
            ],
            present_entities=["brenna", "tomas", "flagon_key"],
            ambiance=AmbianceProfile(lighting=Lighting.DIM, noise=Noise.MODERATE, mood=Mood.PEACEFUL),
        ),
        "flagon_cellar": Location(
            id="flagon_cellar",
            name="The Rusty Flagon - Cellar",
            description=(
                "Barrels of ale and sacks of grain line the damp stone walls. Something "
                "scratches behind the far stack of crates."
            ),
            connections=[
                LocationConnection(target_id="flagon_common_room", direction="up"),
                LocationConnection(
                    target_id="smugglers_tunnel",
                    direction="behind the crates",
                    description="A narrow tunnel, bricked over long ago and since reopened.",
                    is_hidden=True,
                ),
            ],
            present_entities=["cellar_rat"],
            ambiance=AmbianceProfile(lighting=Lighting.DARK, noise=Noise.QUIET, mood=Mood.EERIE),
        ),
        "millford_road": Location(
            id="millford_road",
            name="Millford Road",
            description="A rutted trade road winding between hedgerows toward the mill.",
            connections=[LocationConnection(target_id="flagon_common_room", direction="in")],
            ambiance=AmbianceProfile(lighting=Lighting.BRIGHT, noise=Noise.QUIET, mood=Mood.NEUTRAL),
        ),
    }

    entities = {
        "brenna": NPCEntity(
            id="brenna",
            name="Brenna Cask",
            description="The broad-shouldered halfling who owns the Flagon, never without her rag.",
            personality=PersonalityProfile(
                traits=["Shrewd", "Warm"],
                ideals=["Community"],
                bonds=["The Flagon has been in her family for four generations."],
                flaws=["Cannot turn down a wager."],
                speaking_style="Brisk and friendly, peppered with brewing slang.",
            ),
            knowledge=[
                "Strange noises have been coming from the cellar at night.",
                "A merchant caravan went missing on Millford Road last week.",
            ],
            motivation="Keep the Flagon profitable and her regulars safe.",
            attitude="friendly",
            stats=CreatureStats(
                armor_class=11,
                hit_points=HitPoints(current=18, max=18),
                ability_scores=AbilityScores(strength=12, dexterity=14, constitution=13),
                speed=25,
            ),
        ),
        "tomas": NPCEntity(
            id="tomas",
            name="Tomas the Grey",
            description="A hooded traveller nursing a single cup of wine by the window.",
            personality=PersonalityProfile(
                traits=["Watchful", "Quiet"],
                flaws=["Trusts no one."],
                speaking_style="Soft, measured, answers questions with questions.",
            ),
            knowledge=["Smugglers once used a tunnel beneath the tavern."],
            motivation="Find the tunnel before the smugglers return.",
            attitude="neutral",
            stats=CreatureStats(
                armor_class=14,
                hit_points=HitPoints(current=27, max=27),
                ability_scores=AbilityScores(dexterity=16, wisdom=14),
            ),
        ),
        "cellar_rat": CreatureEntity(
            id="cellar_rat",
            name="Giant Rat",
            description="A dog-sized rat with yellowed teeth and matted fur.",
            stats=CreatureStats(
                armor_class=12,
                hit_points=HitPoints(current=7, max=7),
                ability_scores=AbilityScores(strength=7, dexterity=15, constitution=11),
            ),
        ),
        "flagon_key": ItemEntity(
            id="flagon_key",
            name="Iron Cellar Key",
            description="A heavy key hanging on a nail behind the bar.",
            value_gp=1.0,
        ),
    }

    lore = [
        LoreEntry(
            id="lore_flagon_history",
            category="history",
            content="The Rusty Flagon was built on the ruins of a toll house that guarded Millford Road.",
            related_entities=["brenna"],
        ),
        LoreEntry(
            id="lore_smugglers",
            category="secrets",
            content="Smugglers once moved contraband through a tunnel under the Flagon's cellar.",
            is_public_knowledge=False,
            related_entities=["tomas"],
        ),
        LoreEntry(
            id="lore_millford",
            category="geography",
            content="Millford is a day's walk east; its mill has stood idle since the flood.",
        ),
    ]

    return WorldState(
        id=SAMPLE_WORLD_ID,
        name="The Rusty Flagon",
        description="A roadside tavern on Millford Road with more history than its patrons suspect.",
        locations=locations,
        entities=entities,
        lore=lore,
    )


__all__ = [
    "SAMPLE_WORLD_ID",
    "SAMPLE_STARTING_LOCATION",
    "DEFAULT_PERSONA",
    "create_sample_world",
]
