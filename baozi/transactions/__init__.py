"""Instruction builders and unsigned transaction assembly."""

from .assembler import UnsignedTransaction, assemble, decode_transaction
from .instructions import DISCRIMINATORS, InstructionPlan

__all__ = [
    "DISCRIMINATORS",
    "InstructionPlan",
    "UnsignedTransaction",
    "assemble",
    "decode_transaction",
]
