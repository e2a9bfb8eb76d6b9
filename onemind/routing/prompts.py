"""
Prompt contract for the routing model.

The model is asked for one JSON object per record:
    {"route_type": ..., "confidence": ..., "summary": ..., "data": {...}}
Batch requests wrap those objects in {"items": [...]}.

Storage zones are listed with their canonical values so the normalizer
rarely has to fall back to alias matching.
"""

from onemind.models.route import StorageZone


_STORAGE_ZONE_GUIDE = {
    StorageZone.REFRIGERATED: "冰箱冷藏（牛奶、蔬菜、水果、剩菜等）",
    StorageZone.FROZEN: "冰箱冷冻（冷冻食品、冰淇淋、肉类等）",
    StorageZone.PANTRY: "食品柜（米面、调料、罐头、零食等常温食品）",
    StorageZone.BATHROOM: "浴室（牙膏、洗发水、沐浴露、化妆品等）",
    StorageZone.KITCHEN: "厨房（锅具、餐具、清洁用品等非食品）",
    StorageZone.LIVING_ROOM: "客厅（装饰品、纸巾、小家电等）",
    StorageZone.BEDROOM: "卧室（衣物、个人用品等）",
    StorageZone.STORAGE_ROOM: "储物间（备用品、季节性物品）",
    StorageZone.OTHER: "其他位置",
}


def _storage_zone_lines() -> str:
    return "\n".join(
        f"       * {zone.value}: {guide}" for zone, guide in _STORAGE_ZONE_GUIDE.items()
    )


SYSTEM_PROMPT = f"""你是 OneMind 的智能助手，负责分析用户的语音或图片输入，并将其分类到正确的类别。

分类说明：

1. 消费记录 (finance) - 与花钱、购物、支付相关的内容
   提取字段：
     * amount: 金额（数字，不含货币符号）
     * category: 消费分类（餐饮、交通、购物、娱乐、生活缴费等）
     * description: 具体描述
     * emotion_tag: 情绪标签（可选）
     * is_essential: 是否必要消费（true/false，可选）
     * record_date: 消费日期（YYYY-MM-DD，可选）

2. 待办事项 (todo) - 需要记住或完成的事情
   提取字段：
     * title: 任务标题
     * description: 详细描述（可选）
     * kind: task / reminder / inspiration
     * priority: 优先级（1低 / 2中 / 3高）
     * due_date: 截止日期（YYYY-MM-DD，可选）
     * remind_at: 提醒时间（YYYY-MM-DD HH:mm，可选）
     * repeat_rule: none / daily / weekly / monthly / custom（可选）
     * repeat_interval: 自定义重复间隔天数（配合 custom）
     * category: 工作/学习/健康/购物/出行/生活/灵感

3. 物品库存 (inventory) - 关于物品、食物、日用品的记录
   提取字段：
     * name: 物品名称
     * category: 物品分类（食品、日用品、个护、药品、清洁用品等）
     * storage_zone: 存储位置
{_storage_zone_lines()}
     * quantity: 数量（数字）
     * unit: 单位（个、瓶、袋、盒、斤、克等）
     * expiry_date: 过期日期（YYYY-MM-DD，仅食品和药品需要）

置信度要真实反映判断的确定性，0.5 以下表示非常模糊或无法分类。

JSON 返回格式：
{{
  "route_type": "finance" | "todo" | "inventory" | "unknown",
  "confidence": 0.0-1.0,
  "summary": "一句话总结用户输入的核心内容",
  "data": {{ ... 对应类型的字段，字段不存在时用 null 或忽略 }}
}}"""


def build_route_prompt(text: str, attempt: int) -> str:
    """User prompt for single routing; attempt is 1-based."""
    if attempt <= 1:
        return f"用户输入内容：\n{text}"
    return (
        "请重新分析以下内容，确保返回有效的 JSON 格式。"
        "如果不确定分类，请选择 \"unknown\" 并提供合理的 summary。\n\n"
        f"用户输入内容：\n{text}"
    )


def build_batch_prompt(text: str, attempt: int) -> str:
    """User prompt for batch routing; attempt is 1-based."""
    if attempt <= 1:
        return (
            f"用户输入内容：\n{text}\n\n"
            "如果包含多条独立记录，请拆分为多个对象并返回 JSON: { \"items\": [ ... ] }。"
            "如果只有一条，items 只包含一条。"
        )
    return (
        "请重新分析以下内容，输出 JSON: { \"items\": [ ... ] }，"
        "每个 item 必须符合 route_type/summary/data 结构。\n\n"
        f"用户输入内容：\n{text}"
    )
