from payfast_engine.codec.checksum import ChecksumCodec, EncodedMessage, Sha256ChecksumCodec

__all__ = ["ChecksumCodec", "EncodedMessage", "Sha256ChecksumCodec"]
