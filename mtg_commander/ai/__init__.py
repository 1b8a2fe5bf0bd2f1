"""Scripted opponent"""
from .agent import AIDecision, ScriptedOpponent
