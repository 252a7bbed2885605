import logging

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import BotoCoreError, ClientError

from .config import AWS_ACCESS_KEY, AWS_SECRET_KEY, AWS_REGION, USERS_TABLE, EVENTS_TABLE, GUESTS_TABLE

logger = logging.getLogger(__name__)

# Initialize DynamoDB resource
dynamodb = boto3.resource(
    "dynamodb",
    aws_access_key_id=AWS_ACCESS_KEY,
    aws_secret_access_key=AWS_SECRET_KEY,
    region_name=AWS_REGION,
)

users_table = dynamodb.Table(USERS_TABLE)
events_table = dynamodb.Table(EVENTS_TABLE)
guests_table = dynamodb.Table(GUESTS_TABLE)


class DatabaseError(Exception):
    """Raised when a DynamoDB call fails."""


class ItemNotFoundError(DatabaseError):
    """Raised when a conditional write targets an item that no longer exists."""


def _is_conditional_check_failure(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


def _scan_all(table, filter_expression) -> list:
    """
    Scan a whole table following the pagination cursor.

    Args:
        table: The DynamoDB table resource.
        filter_expression: A boto3 condition applied server side.

    Returns:
        list: Every matching item.
    """
    items = []
    kwargs = {"FilterExpression": filter_expression}
    while True:
        response = table.scan(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


def _update_item(table, key: dict, fields: dict) -> dict:
    """
    Update the given attributes of an existing item and return its new state.

    Args:
        table: The DynamoDB table resource.
        key (dict): The primary key of the item.
        fields (dict): Attribute name -> new value.

    Returns:
        dict: The updated attributes.

    Raises:
        ItemNotFoundError: If the item was deleted, update_item would otherwise recreate it.
    """
    key_name = next(iter(key))
    update_expression = "SET " + ", ".join(f"#{name} = :{name}" for name in fields)
    try:
        response = table.update_item(
            Key=key,
            UpdateExpression=update_expression,
            ConditionExpression=Attr(key_name).exists(),
            ExpressionAttributeNames={f"#{name}": name for name in fields},
            ExpressionAttributeValues={f":{name}": value for name, value in fields.items()},
            ReturnValues="ALL_NEW",
        )
    except ClientError as e:
        if _is_conditional_check_failure(e):
            raise ItemNotFoundError(f"{key_name} {key[key_name]} does not exist")
        raise
    return response.get("Attributes", {})


# === User-related database operations ===

def save_user(user_item: dict):
    """
    Save a new user to DynamoDB.

    Args:
        user_item (dict): The user record, keyed by user_id.
    """
    try:
        users_table.put_item(Item=user_item)
        logger.info("User %s saved", user_item["user_id"])
    except (BotoCoreError, ClientError) as e:
        logger.error("Error saving user to DynamoDB: %s", e)
        raise DatabaseError(f"Failed to save user to DynamoDB: {str(e)}")


def get_user_by_id(user_id: str):
    try:
        response = users_table.get_item(Key={"user_id": user_id})
        return response.get("Item")
    except (BotoCoreError, ClientError) as e:
        logger.error("Error fetching user %s: %s", user_id, e)
        raise DatabaseError(f"Error fetching user by ID: {str(e)}")


def get_user_by_email(email: str):
    """
    Fetch a user by email. Emails are stored lower-cased.

    Returns:
        dict | None: The user record, if one exists.
    """
    try:
        users = _scan_all(users_table, Attr("email").eq(email.lower()))
        return users[0] if users else None
    except (BotoCoreError, ClientError) as e:
        logger.error("Error fetching user by email: %s", e)
        raise DatabaseError(f"Error fetching user by email: {str(e)}")


def update_user(user_id: str, fields: dict) -> dict:
    try:
        return _update_item(users_table, {"user_id": user_id}, fields)
    except (BotoCoreError, ClientError) as e:
        logger.error("Error updating user %s: %s", user_id, e)
        raise DatabaseError(f"Error updating user: {str(e)}")


def add_push_token(user_id: str, token: str):
    """
    Append a device push token to the user in a single conditional write.

    Args:
        user_id (str): The owner of the device.
        token (str): The push token reported by the device.

    Returns:
        list | None: The user's tokens after the write, or None if the token was already registered.
    """
    try:
        response = users_table.update_item(
            Key={"user_id": user_id},
            UpdateExpression="SET #push_tokens = list_append(if_not_exists(#push_tokens, :empty), :token)",
            ConditionExpression=Attr("user_id").exists() & ~Attr("push_tokens").contains(token),
            ExpressionAttributeNames={"#push_tokens": "push_tokens"},
            ExpressionAttributeValues={":empty": [], ":token": [token]},
            ReturnValues="ALL_NEW",
        )
    except ClientError as e:
        if _is_conditional_check_failure(e):
            return None
        logger.error("Error adding push token for user %s: %s", user_id, e)
        raise DatabaseError(f"Error adding push token: {str(e)}")
    except BotoCoreError as e:
        logger.error("Error adding push token for user %s: %s", user_id, e)
        raise DatabaseError(f"Error adding push token: {str(e)}")

    logger.info("Push token added for user %s", user_id)
    return response.get("Attributes", {}).get("push_tokens", [])


# === Event-related database operations ===

def fetch_events_by_user(user_id: str) -> list:
    """
    Fetch all events owned by a user.

    Args:
        user_id (str): The id of the owner.

    Returns:
        list: A list of events for the user.
    """
    try:
        return _scan_all(events_table, Attr("userId").eq(user_id))
    except (BotoCoreError, ClientError) as e:
        logger.error("Error fetching events for user %s: %s", user_id, e)
        raise DatabaseError(f"Error fetching events from DynamoDB: {str(e)}")


def get_event_by_id(event_id: str):
    """
    Fetch an event by its event_id from DynamoDB.

    Args:
        event_id (str): The unique event ID.

    Returns:
        dict: The event data.
    """
    try:
        response = events_table.get_item(Key={"event_id": event_id})
        return response.get("Item")
    except (BotoCoreError, ClientError) as e:
        logger.error("Error fetching event %s: %s", event_id, e)
        raise DatabaseError(f"Error fetching event by ID: {str(e)}")


def save_event(event_item: dict):
    """
    Save a new event to DynamoDB.

    Args:
        event_item (dict): The event details to be saved.
    """
    try:
        events_table.put_item(Item=event_item)
        logger.info("Event %s saved", event_item["event_id"])
    except (BotoCoreError, ClientError) as e:
        logger.error("Error saving event to DynamoDB: %s", e)
        raise DatabaseError(f"Failed to save event to DynamoDB: {str(e)}")


def update_event(event_id: str, fields: dict) -> dict:
    try:
        return _update_item(events_table, {"event_id": event_id}, fields)
    except (BotoCoreError, ClientError) as e:
        logger.error("Error updating event %s: %s", event_id, e)
        raise DatabaseError(f"Error updating event: {str(e)}")


def delete_event(event_id: str):
    try:
        events_table.delete_item(Key={"event_id": event_id})
        logger.info("Event %s deleted", event_id)
    except (BotoCoreError, ClientError) as e:
        logger.error("Error deleting event %s: %s", event_id, e)
        raise DatabaseError(f"Error deleting event: {str(e)}")


# === Guest-related database operations ===

def fetch_guests_by_event(event_id: str) -> list:
    """
    Fetch the guest list of an event.

    Args:
        event_id (str): The event the guests belong to.

    Returns:
        list: The guests whose eventId matches.
    """
    try:
        return _scan_all(guests_table, Attr("eventId").eq(event_id))
    except (BotoCoreError, ClientError) as e:
        logger.error("Error fetching guests for event %s: %s", event_id, e)
        raise DatabaseError(f"Error fetching guests from DynamoDB: {str(e)}")


def get_guest_by_id(guest_id: str):
    try:
        response = guests_table.get_item(Key={"guest_id": guest_id})
        return response.get("Item")
    except (BotoCoreError, ClientError) as e:
        logger.error("Error fetching guest %s: %s", guest_id, e)
        raise DatabaseError(f"Error fetching guest by ID: {str(e)}")


def save_guest(guest_item: dict):
    """
    Add a guest to the Guests table.

    Args:
        guest_item (dict): The guest details, including the eventId it belongs to.
    """
    try:
        guests_table.put_item(Item=guest_item)
        logger.info("Guest %s added to event %s", guest_item["guest_id"], guest_item["eventId"])
    except (BotoCoreError, ClientError) as e:
        logger.error("Error adding guest to DynamoDB: %s", e)
        raise DatabaseError(f"Failed to save guest to DynamoDB: {str(e)}")


def update_guest(guest_id: str, fields: dict) -> dict:
    try:
        return _update_item(guests_table, {"guest_id": guest_id}, fields)
    except (BotoCoreError, ClientError) as e:
        logger.error("Error updating guest %s: %s", guest_id, e)
        raise DatabaseError(f"Error updating guest: {str(e)}")


def delete_guest(guest_id: str):
    try:
        guests_table.delete_item(Key={"guest_id": guest_id})
        logger.info("Guest %s deleted", guest_id)
    except (BotoCoreError, ClientError) as e:
        logger.error("Error deleting guest %s: %s", guest_id, e)
        raise DatabaseError(f"Error deleting guest: {str(e)}")


def delete_guests_by_event(event_id: str) -> int:
    """
    Delete every guest of an event.

    Returns:
        int: How many guests were removed.
    """
    guests = fetch_guests_by_event(event_id)
    try:
        with guests_table.batch_writer() as batch:
            for guest in guests:
                batch.delete_item(Key={"guest_id": guest["guest_id"]})
    except (BotoCoreError, ClientError) as e:
        logger.error("Error deleting guests of event %s: %s", event_id, e)
        raise DatabaseError(f"Error deleting guests: {str(e)}")
    return len(guests)
