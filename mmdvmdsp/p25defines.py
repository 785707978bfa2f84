"""Frame geometry and sync patterns of the P25 air interface at 24 kHz."""

P25_RADIO_SYMBOL_LENGTH = 5  # samples per symbol at 24 kHz

P25_HDR_FRAME_LENGTH_BYTES = 99
P25_HDR_FRAME_LENGTH_BITS = P25_HDR_FRAME_LENGTH_BYTES * 8
P25_HDR_FRAME_LENGTH_SYMBOLS = P25_HDR_FRAME_LENGTH_BYTES * 4
P25_HDR_FRAME_LENGTH_SAMPLES = P25_HDR_FRAME_LENGTH_SYMBOLS * P25_RADIO_SYMBOL_LENGTH

P25_LDU_FRAME_LENGTH_BYTES = 216
P25_LDU_FRAME_LENGTH_BITS = P25_LDU_FRAME_LENGTH_BYTES * 8
P25_LDU_FRAME_LENGTH_SYMBOLS = P25_LDU_FRAME_LENGTH_BYTES * 4
P25_LDU_FRAME_LENGTH_SAMPLES = P25_LDU_FRAME_LENGTH_SYMBOLS * P25_RADIO_SYMBOL_LENGTH

P25_TERMLC_FRAME_LENGTH_BYTES = 54
P25_TERMLC_FRAME_LENGTH_BITS = P25_TERMLC_FRAME_LENGTH_BYTES * 8
P25_TERMLC_FRAME_LENGTH_SYMBOLS = P25_TERMLC_FRAME_LENGTH_BYTES * 4
P25_TERMLC_FRAME_LENGTH_SAMPLES = P25_TERMLC_FRAME_LENGTH_SYMBOLS * P25_RADIO_SYMBOL_LENGTH

P25_TERM_FRAME_LENGTH_BYTES = 18
P25_TERM_FRAME_LENGTH_BITS = P25_TERM_FRAME_LENGTH_BYTES * 8
P25_TERM_FRAME_LENGTH_SYMBOLS = P25_TERM_FRAME_LENGTH_BYTES * 4
P25_TERM_FRAME_LENGTH_SAMPLES = P25_TERM_FRAME_LENGTH_SYMBOLS * P25_RADIO_SYMBOL_LENGTH

P25_TSDU_FRAME_LENGTH_BYTES = 45
P25_TSDU_FRAME_LENGTH_BITS = P25_TSDU_FRAME_LENGTH_BYTES * 8
P25_TSDU_FRAME_LENGTH_SYMBOLS = P25_TSDU_FRAME_LENGTH_BYTES * 4
P25_TSDU_FRAME_LENGTH_SAMPLES = P25_TSDU_FRAME_LENGTH_SYMBOLS * P25_RADIO_SYMBOL_LENGTH

P25_PDU_HDR_FRAME_LENGTH_BYTES = 45
P25_PDU_HDR_FRAME_LENGTH_BITS = P25_PDU_HDR_FRAME_LENGTH_BYTES * 8
P25_PDU_HDR_FRAME_LENGTH_SYMBOLS = P25_PDU_HDR_FRAME_LENGTH_BYTES * 4
P25_PDU_HDR_FRAME_LENGTH_SAMPLES = P25_PDU_HDR_FRAME_LENGTH_SYMBOLS * P25_RADIO_SYMBOL_LENGTH

P25_SYNC_LENGTH_BYTES = 6
P25_SYNC_LENGTH_BITS = P25_SYNC_LENGTH_BYTES * 8
P25_SYNC_LENGTH_SYMBOLS = P25_SYNC_LENGTH_BYTES * 4
P25_SYNC_LENGTH_SAMPLES = P25_SYNC_LENGTH_SYMBOLS * P25_RADIO_SYMBOL_LENGTH

P25_NID_LENGTH_BYTES = 8
P25_NID_LENGTH_BITS = P25_NID_LENGTH_BYTES * 8
P25_NID_LENGTH_SYMBOLS = P25_NID_LENGTH_BYTES * 4
P25_NID_LENGTH_SAMPLES = P25_NID_LENGTH_SYMBOLS * P25_RADIO_SYMBOL_LENGTH

P25_SYNC_BYTES = bytes([0x55, 0x75, 0xF5, 0xFF, 0x77, 0xFF])
P25_SYNC_BYTES_LENGTH = 6

P25_SYNC_BITS = 0x00005575F5FF77FF
P25_SYNC_BITS_MASK = 0x0000FFFFFFFFFFFF

# Dibits of the sync word mapped to symbol levels.
P25_SYNC_SYMBOLS_VALUES = (
    +3, +3, +3, +3, +3, -3, +3, +3, -3, -3, +3, +3,
    -3, -3, -3, -3, +3, -3, +3, -3, -3, -3, -3, -3,
)

P25_SYNC_SYMBOLS = 0x00FB30A0
P25_SYNC_SYMBOLS_MASK = 0x00FFFFFF

P25_DUID_HDU = 0x00    # Header Data Unit
P25_DUID_TDU = 0x03    # Simple Terminator Data Unit
P25_DUID_LDU1 = 0x05   # Logical Link Data Unit 1
P25_DUID_TSDU = 0x07   # Trunking System Data Unit
P25_DUID_LDU2 = 0x0A   # Logical Link Data Unit 2
P25_DUID_PDU = 0x0C    # Packet Data Unit
P25_DUID_TDULC = 0x0F  # Terminator Data Unit with Link Control