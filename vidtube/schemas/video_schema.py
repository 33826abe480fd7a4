# schemas/video_schema.py

from marshmallow import fields, validate

from vidtube.schemas.user_schema import StrippedSchema, NOT_BLANK


SORT_FIELDS = ("createdAt", "views", "duration", "title")


class VideoPublishSchema(StrippedSchema):
    title = fields.String(required=True, validate=[NOT_BLANK, validate.Length(max=255)])
    description = fields.String(required=True, validate=NOT_BLANK)


class PageQuerySchema(StrippedSchema):
    page = fields.Integer(load_default=1, validate=validate.Range(min=1))
    limit = fields.Integer(load_default=10, validate=validate.Range(min=1, max=100))


class VideoListQuerySchema(PageQuerySchema):
    query = fields.String(load_default=None)
    sort_by = fields.String(load_default="createdAt", data_key="sortBy",
                            validate=validate.OneOf(SORT_FIELDS))
    sort_type = fields.String(load_default="desc", data_key="sortType",
                              validate=validate.OneOf(("asc", "desc")))
    user_id = fields.UUID(load_default=None, data_key="userId")


class ContentSchema(StrippedSchema):
    """Body of tweets and comments."""
    content = fields.String(required=True, validate=[NOT_BLANK, validate.Length(max=5000)])


class PlaylistSchema(StrippedSchema):
    name = fields.String(required=True, validate=[NOT_BLANK, validate.Length(max=200)])
    description = fields.String(load_default="")


class PlaylistUpdateSchema(StrippedSchema):
    name = fields.String(validate=[NOT_BLANK, validate.Length(max=200)])
    description = fields.String()
