from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app import config
from app.common.serializers import id_str, oid
from app.users.user_models import Role
from app.users.user_service import group_names, user_names

# ==================== LEADERBOARD QUERIES ====================

async def _group_aggregate(db: AsyncIOMotorDatabase) -> List[dict]:
    """
    Per-group XP totals over active students that belong to a group
    Groups without students never appear; unknown group ids are dropped
    """
    pipeline = [
        {
            "$match": {
                "role": Role.STUDENT.value,
                "isActive": True,
                "groupId": {"$ne": None},
            }
        },
        {
            "$group": {
                "_id": "$groupId",
                "totalStudents": {"$sum": 1},
                "totalXP": {"$sum": "$xp"},
                "avgXP": {"$avg": "$xp"},
                "maxXP": {"$max": "$xp"},
                "avgLevel": {"$avg": "$level"},
            }
        },
    ]
    rows = await db.users.aggregate(pipeline).to_list(length=None)

    groups = await db.groups.find(
        {"_id": {"$in": [row["_id"] for row in rows]}},
        {"name": 1, "adminId": 1},
    ).to_list(length=None)
    groups_by_id = {group["_id"]: group for group in groups}

    stats = []
    for row in rows:
        group = groups_by_id.get(row["_id"])
        if not group:
            continue
        stats.append({
            "groupId": str(row["_id"]),
            "groupName": group["name"],
            "adminId": group.get("adminId"),
            "totalStudents": row["totalStudents"],
            "totalXP": row["totalXP"],
            "avgXP": round(row["avgXP"] or 0, 1),
            "maxXP": row["maxXP"],
            "avgLevel": round(row["avgLevel"] or 0, 1),
        })

    stats.sort(key=lambda s: (-s["totalXP"], s["groupName"]))
    return stats


async def student_leaderboard(
    db: AsyncIOMotorDatabase,
    group_id: Optional[str] = None,
    limit: int = config.LEADERBOARD_DEFAULT_LIMIT,
) -> dict:
    """
    Students with XP, ordered xp desc, level desc, username asc

    rank is the 1-based position in the returned list. Without a group
    filter the response also carries groupStats.
    """
    query = {"role": Role.STUDENT.value, "isActive": True, "xp": {"$gt": 0}}
    if group_id:
        query["groupId"] = oid(group_id)

    students = await db.users.find(
        query,
        {"username": 1, "xp": 1, "level": 1, "groupId": 1},
    ).sort([("xp", -1), ("level", -1), ("username", 1)]).limit(limit).to_list(length=limit)

    names = await group_names(db, [s.get("groupId") for s in students])

    leaderboard = []
    for idx, student in enumerate(students):
        group_key = id_str(student.get("groupId"))
        leaderboard.append({
            "rank": idx + 1,
            "id": str(student["_id"]),
            "username": student["username"],
            "xp": student.get("xp", 0),
            "level": student.get("level", 1),
            "groupId": group_key,
            "groupName": names.get(group_key) if group_key else None,
        })

    group_stats = None
    if not group_id:
        group_stats = await _group_aggregate(db)
        for stat in group_stats:
            stat.pop("adminId")

    return {
        "leaderboard": leaderboard,
        "groupStats": group_stats,
        "totalStudents": len(leaderboard),
        "filters": {
            "groupId": group_id,
            "limit": limit,
        },
    }


async def group_leaderboard(db: AsyncIOMotorDatabase) -> List[dict]:
    """Groups ranked by total XP, with the admin's username"""
    stats = await _group_aggregate(db)
    admins = await user_names(db, [stat["adminId"] for stat in stats])

    ranked = []
    for idx, stat in enumerate(stats):
        admin_id = stat.pop("adminId")
        ranked.append({
            "rank": idx + 1,
            **stat,
            "adminName": admins.get(str(admin_id)) if admin_id else None,
        })
    return ranked
