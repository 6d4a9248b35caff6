"""
schemaledger CLI -- ``schemaledger apply | status | history | checksum``.
"""
