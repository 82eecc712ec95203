"""
Battle system package.
- models.py (units, equipment instances, stat blocks)
- stats.py / experience.py (stat engine, level-up)
- factory.py (unit construction and refresh)
- mechanics.py (attack resolution)
- session.py / phase.py (battle state and the phase machine)
- ai.py / delegation.py (enemy turn and auto-play)
"""
