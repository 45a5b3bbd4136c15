"""
Notation package: game records, positions and moves for the Amazon variant.

Pure and synchronous; nothing here touches the engine or the network.

Modules:
    constants — Piece letters, default start position, result tokens
    errors    — InvalidPosition, MalformedRecord, UnresolvedMove
    models    — Piece, Square, Position, Move, Evaluation, GameRecord, BoardHistory
    fen       — decode_fen / encode_fen
    san       — Movement patterns, SAN token resolution, move application
    pgn       — decode_game / parse_evaluation
    replay    — GameRecord -> BoardHistory
"""
