"""Skier routing decision engine for resort traffic simulation.

Skiers are autonomous agents that choose lifts and trails at every decision
point from skill-based preferences, a discounted lookahead over the terrain
each choice unlocks, per-skier goals and some controlled randomness.

Packages:
- model: Structures, skill scales, tuning, agents and decision records
- core: Plan geometry, terrain surveying and random streams
- routing: Registry, connectivity graph, scoring, decisions, goals, junctions
- simulation: SkierRoutingEngine and population sampling
"""
