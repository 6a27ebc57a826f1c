from .bson_codec import decode_id_set, decode_many, encode_id_set, encode_many

__all__ = ["decode_id_set", "decode_many", "encode_id_set", "encode_many"]
