"""
Practice session example: Settings → Session → Level/Rewards → Progress

Runs a simulated learner through two addition sessions and one fractions
session headlessly:
1. Configure logging and a throwaway data directory
2. Store per-module settings in a JSON Settings Source
3. Drive an ExerciseSession the way a UI host would (answers + ticks)
4. Inspect level state, rewards and module progress
"""

import json
import random
import sys
import tempfile
from pathlib import Path

# Make the package importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent))

from mathpractice.engine.generator import vertical_alignment  # noqa: E402
from mathpractice.engine.notifications import LevelChanged, RewardGranted  # noqa: E402
from mathpractice.models.problem import Layout  # noqa: E402
from mathpractice.models.session_state import SessionPhase  # noqa: E402
from mathpractice.orchestrator import PracticeOrchestrator  # noqa: E402
from mathpractice.utils import JsonFileStore, JsonProgressStore, JsonSettingsSource, setup_logging  # noqa: E402
from mathpractice.utils.progress import accuracy_summary, accuracy_trend  # noqa: E402


def simulate(session, learner_rng, accuracy):
    """Answer like a learner who is right `accuracy` of the time and takes 2-6 s per try."""
    while session.phase is not SessionPhase.COMPLETED:
        if session.phase is SessionPhase.LEVEL_UP_PAUSE:
            session.acknowledge_level_up()
            continue
        if session.phase is SessionPhase.WAITING_TO_ADVANCE:
            session.advance()
            continue

        problem = session.active_problem
        for _ in range(learner_rng.randint(2, 6)):
            session.tick()
        if session.phase is not SessionPhase.ACTIVE:
            continue
        if learner_rng.random() < accuracy:
            session.submit_answer(problem.answer_text)
        else:
            session.submit_answer(problem.correct_answer + 1)


def main():
    # ==================== Step 1: Logging and data directory ====================
    print("=" * 60)
    print("STEP 1: Setup")
    print("=" * 60)

    setup_logging("WARNING")
    data_dir = Path(tempfile.mkdtemp(prefix="mathpractice-"))
    print(f"✓ Data directory: {data_dir}")
    print()

    # ==================== Step 2: Settings Source ====================
    print("=" * 60)
    print("STEP 2: Module settings")
    print("=" * 60)

    settings_path = data_dir / "module_settings.json"
    settings_path.write_text(
        json.dumps(
            {
                "moduleSettings": {
                    "addition": {
                        "difficulty": "beginner",
                        "problemCount": 12,
                        "timeValue": 20,
                        "maxAttempts": 2,
                        "enableAdaptiveDifficulty": True,
                        "enableRewards": True,
                    },
                    "fractions": {
                        "problemCount": 6,
                        "maxAttempts": 2,
                        "fractionType": "mixed",
                        "enableAdaptiveDifficulty": False,
                    },
                }
            },
            indent=2,
        ),
        encoding="utf-8",
    )
    settings_source = JsonSettingsSource(settings_path)
    print(f"✓ Settings: {settings_source.get_module_settings('addition')}")
    print()

    # ==================== Step 3: Sessions ====================
    print("=" * 60)
    print("STEP 3: Running sessions")
    print("=" * 60)

    orchestrator = PracticeOrchestrator(
        "alice",
        "addition",
        settings_source,
        JsonFileStore(data_dir / "learners"),
        JsonProgressStore(data_dir / "progress.json"),
        rng=random.Random(2024),
    )
    orchestrator.channel.subscribe(
        lambda e: print(f"  ⬆ Level {e.direction}: {e.previous_level.value} → {e.new_level.value}"),
        LevelChanged,
    )
    orchestrator.channel.subscribe(
        lambda e: print(f"  🏆 Reward: {e.reward.definition.name}"),
        RewardGranted,
    )

    learner_rng = random.Random(7)
    for accuracy in (0.7, 0.95):
        session = orchestrator.start_session()
        first = session.active_problem
        print(f"\nSession at {session.difficulty.value}, first problem: {' + '.join(first.operand_text(i) for i in range(len(first.operands)))}")
        if first.layout is Layout.VERTICAL:
            for int_part, dec_part in vertical_alignment(first).rows:
                print(f"    {int_part}.{dec_part}" if dec_part else f"    {int_part}")

        simulate(session, learner_rng, accuracy)
        summary = session.summary
        print(f"✓ Score {summary.score}/{summary.total_problems} in {summary.elapsed_seconds}s (saved: {summary.saved})")
        if orchestrator.last_milestones:
            print(f"  Milestones: {[r.id for r in orchestrator.last_milestones]}")

    fractions = PracticeOrchestrator(
        "alice",
        "fractions",
        settings_source,
        orchestrator.store,
        orchestrator.progress_store,
        channel=orchestrator.channel,
        rng=random.Random(2024),
    )
    session = fractions.start_session()
    print(f"\nFractions session, first problem: {session.active_problem.question_text()}")
    simulate(session, learner_rng, 0.8)
    summary = session.summary
    print(f"✓ Score {summary.score}/{summary.total_problems} in {summary.elapsed_seconds}s (saved: {summary.saved})")
    fractions.close()
    print()

    # ==================== Step 4: Progress ====================
    print("=" * 60)
    print("STEP 4: Progress")
    print("=" * 60)

    progress = orchestrator.module_progress()
    history = orchestrator.progress_store.history("addition")
    print(f"✓ Module progress: {progress.to_dict()}")
    print(f"  Accuracy: {accuracy_summary(history)}")
    print(f"  Trend: {accuracy_trend(history, window=1)}")
    print(f"  Level: {orchestrator.level_manager.current_level.value}")
    print(f"  Fractions: {fractions.module_progress().to_dict()}")
    print(f"  Rewards: {[r.id for r in orchestrator.reward_engine.earned]}")
    for collection in orchestrator.reward_engine.collections:
        print(f"    {collection.definition.name}: {collection.progress}%")

    orchestrator.close()


if __name__ == "__main__":
    main()
