"""Entry point for a headless secret-alliance campaign."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from alliances.config import DecisionConfig
from alliances.simulation.engine import AllianceSimulation


def main(argv: list[str] | None = None) -> int:
    """Run a campaign and print a summary."""
    config = DecisionConfig()

    # Parse CLI args
    days = 84
    clans = 12
    factions = 3
    export_dir = None
    save_path = None
    load_path = None
    verbose = False

    for arg in sys.argv[1:] if argv is None else argv:
        if arg.startswith("--days="):
            days = int(arg.split("=")[1])
        elif arg.startswith("--clans="):
            clans = int(arg.split("=")[1])
        elif arg.startswith("--factions="):
            factions = int(arg.split("=")[1])
        elif arg.startswith("--seed="):
            config.seed = int(arg.split("=")[1])
        elif arg.startswith("--export="):
            export_dir = arg.split("=", 1)[1]
            config.trajectory_recording = True
            config.trajectory_output_dir = export_dir
        elif arg.startswith("--save="):
            save_path = arg.split("=", 1)[1]
        elif arg.startswith("--load="):
            load_path = arg.split("=", 1)[1]
        elif arg.startswith("--checkpoint="):
            config.checkpoint_interval = int(arg.split("=")[1])
        elif arg == "--verbose" or arg == "-v":
            verbose = True
        elif arg == "--help" or arg == "-h":
            print("Usage: python -m alliances.main [options]")
            print()
            print("Options:")
            print("  --days=N              Simulated days to run (default: 84)")
            print("  --clans=N             Number of clans (default: 12)")
            print("  --factions=N          Number of factions (default: 3)")
            print("  --seed=N              Random seed (default: 42)")
            print("  --export=DIR          Record decisions and export them under DIR")
            print("  --save=PATH           Write a decision-memory checkpoint to PATH")
            print("  --load=PATH           Restore decision memory from PATH before running")
            print("  --checkpoint=N        Auto-checkpoint every N days into the checkpoint dir")
            print("  --verbose, -v         Log every decision")
            return 0
        else:
            print(f"Unknown option: {arg} (try --help)")
            return 2

    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    sim = AllianceSimulation(config)
    sim.populate(clans, factions=factions)
    if sim.checkpoints is not None:
        print(f"Auto-checkpointing every {config.checkpoint_interval} days to {config.checkpoint_dir}")

    if load_path:
        from alliances.persistence.checkpoint import CheckpointManager

        CheckpointManager(
            str(Path(load_path).parent), auto_interval=0, max_checkpoints=config.checkpoint_max
        ).restore(sim, load_path)

    sim.run(days)

    summary = sim.summary()
    print(f"Campaign finished on day {summary['day']}")
    print(f"  Active coalitions: {summary['active_coalitions']}")
    print(f"  Decisions fired:   {summary['decisions']}")
    print(f"  Leaks:             {summary['leaks']}")
    print(f"  Expired requests:  {summary['expired_requests']}")
    print(f"  Members at risk:   {summary['members_at_risk']}")
    for coalition in sim.coalitions.all_active():
        names = ", ".join(
            sim.world.get_clan(m).name for m in coalition.members if sim.world.get_clan(m)
        )
        print(
            f"  - {coalition.name}: [{names}] "
            f"trust={coalition.trust:.2f} secrecy={coalition.secrecy:.2f}"
        )

    if sim.recorder is not None:
        print(f"Trajectory written to {sim.recorder.output_dir}")

    if save_path:
        from alliances.persistence.checkpoint import CheckpointManager
        from alliances.persistence.serializer import MemorySerializer

        target = Path(save_path)
        manager = CheckpointManager(
            str(target.parent), auto_interval=0, max_checkpoints=config.checkpoint_max
        )
        print(f"Checkpoint saved to {manager.write(MemorySerializer().serialize(sim), target)}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
