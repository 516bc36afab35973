"""Test package for the Math Trainer.

Core modules (generator, evaluator, session engine, aggregation, history)
are exercised deterministically with seeded generators and a fake clock.
The pygame shell is smoke-tested with SDL's dummy drivers so no window is
opened.  Run ``pytest`` from the project root.
"""
