"""Guidance and status messages in Chinese and English."""

MESSAGES_ZH = {
    "replan": (
        "** ⚠️ 重要提示：需要重新规划策略 **\n\n"
        "你已经连续失败了 {failures} 次。当前方法不可行，请立即尝试完全不同的方法：\n\n"
        "1. **重新分析任务**：任务目标是 '{task}'，请确认是否理解正确\n"
        "2. **尝试不同操作**：调整坐标、滑动屏幕、返回上一页，或使用 Launch 启动应用\n"
        "3. **检查当前状态**：仔细分析屏幕，确认当前处于什么页面\n"
        "4. **如果确实无法完成**：使用 finish(message=\"无法完成的原因\") 说明情况\n\n"
        "请立即重新分析屏幕，制定新的操作计划，并继续执行。"
    ),
    "takeover_hint": (
        "** ⚠️ 需要用户介入 **\n\n"
        "已经连续失败 {failures} 次，当前方法似乎无法完成任务。\n"
        "如果遇到以下情况，请使用 Take_over 请求用户介入：\n"
        "1. 需要输入验证码、密码等安全信息\n"
        "2. 需要用户手动选择或确认\n"
        "3. 遇到无法自动处理的情况\n\n"
        "否则，请继续尝试不同的方法完成任务。"
    ),
    "intervention": (
        "** ⚠️ 用户介入提示 **\n"
        "{message}\n\n"
        "用户已完成介入操作，请继续执行任务。分析当前屏幕状态，继续下一步操作。"
    ),
    "action_failed": (
        "⚠️ 上次操作失败: {message}\n"
        "失败的操作: {action}\n"
        "请分析失败原因，并尝试完全不同的方法。不要重复相同的操作。"
    ),
    "task_updated": (
        "** 📝 任务已更新 **\n\n"
        "原任务目标: {old_task}\n"
        "新任务目标: {new_task}\n\n"
        "请根据新的任务目标继续执行。如果新任务与当前状态不符，请先返回或重新开始。"
    ),
    "history_summary": (
        "** 📋 历史操作摘要 **\n"
        "{summary}\n\n---\n"
        "以上是之前的操作历史摘要。请基于此摘要和当前屏幕状态继续执行任务。"
    ),
    "summary_system": "你是一个对话历史总结专家，能够提取关键信息并压缩对话内容。请用简洁的中文总结。",
    "summary_instruction": (
        "请总结以下对话历史，提取关键信息：\n"
        "1. 任务目标是什么\n"
        "2. 已执行了哪些主要操作（列出关键步骤）\n"
        "3. 遇到了什么困难，如何解决的\n"
        "4. 当前处于什么状态\n\n"
        "请用简洁的中文总结，保留重要信息，忽略细节和图片描述。\n"
        "总结格式：\n"
        "- 任务目标：[目标]\n"
        "- 已执行操作：[操作列表]\n"
        "- 遇到问题：[问题及解决方案]\n"
        "- 当前状态：[状态]\n\n"
        "对话历史：\n{history}"
    ),
    "summary_blank": "已执行 {steps} 步操作，继续执行任务。",
    "summary_fallback": "已执行约 {steps} 步操作，继续执行任务。如果遇到问题，请尝试不同的方法。",
    "role_user": "用户",
    "role_assistant": "助手",
    "image_removed": "屏幕截图已移除以节省空间",
    "screen_elements": "屏幕元素",
    "capture_unavailable": "截图服务不可用: {reason}",
    "no_observation": "未获取到屏幕数据",
    "model_error": "模型请求失败: {error}",
    "max_steps_reached": "已达到最大步数",
    "stopped": "任务已停止",
    "thinking": "思考过程",
    "action": "执行动作",
    "result": "执行结果",
    "task_completed": "任务完成",
    "step": "步骤",
    "performance_metrics": "性能指标",
    "time_to_first_token": "首 Token 延迟",
    "total_inference_time": "总推理时间",
}

MESSAGES_EN = {
    "replan": (
        "** ⚠️ Important: re-plan your strategy **\n\n"
        "You have failed {failures} times in a row. The current approach is not working; "
        "switch to a completely different one now:\n\n"
        "1. **Re-read the task**: the goal is '{task}', make sure you understood it\n"
        "2. **Try other operations**: adjust coordinates, swipe, go back, or use Launch\n"
        "3. **Check the current state**: look at the screen and identify the page you are on\n"
        "4. **If it really cannot be done**: explain why with finish(message=\"reason\")\n\n"
        "Re-analyze the screen, make a new plan and continue."
    ),
    "takeover_hint": (
        "** ⚠️ User intervention may be needed **\n\n"
        "{failures} consecutive failures; the current approach does not seem to work.\n"
        "Use Take_over to ask the user for help when:\n"
        "1. A verification code, password or other secret must be entered\n"
        "2. The user has to choose or confirm something manually\n"
        "3. The situation cannot be handled automatically\n\n"
        "Otherwise keep trying a different approach."
    ),
    "intervention": (
        "** ⚠️ User intervention **\n"
        "{message}\n\n"
        "The user has finished the manual operation. Analyze the current screen and continue the task."
    ),
    "action_failed": (
        "⚠️ The previous action failed: {message}\n"
        "Failed action: {action}\n"
        "Analyze why it failed and try a completely different approach. Do not repeat the same action."
    ),
    "task_updated": (
        "** 📝 Task updated **\n\n"
        "Previous task: {old_task}\n"
        "New task: {new_task}\n\n"
        "Continue with the new task. If the current screen does not fit it, go back or start over first."
    ),
    "history_summary": (
        "** 📋 Summary of earlier steps **\n"
        "{summary}\n\n---\n"
        "The above summarizes the earlier history. Continue the task from this summary and the current screen."
    ),
    "summary_system": (
        "You summarize conversation histories, extracting the key facts and compressing the rest. "
        "Be concise."
    ),
    "summary_instruction": (
        "Summarize the conversation history below and extract the key information:\n"
        "1. What the task goal is\n"
        "2. Which main operations were performed (list the key steps)\n"
        "3. Which problems came up and how they were solved\n"
        "4. What the current state is\n\n"
        "Keep it concise, keep important facts, skip details and image descriptions.\n"
        "Format:\n"
        "- Task goal: [goal]\n"
        "- Operations: [list]\n"
        "- Problems: [problems and solutions]\n"
        "- Current state: [state]\n\n"
        "Conversation history:\n{history}"
    ),
    "summary_blank": "Executed {steps} steps so far, continue the task.",
    "summary_fallback": (
        "Executed about {steps} steps so far, continue the task. "
        "If something goes wrong, try a different approach."
    ),
    "role_user": "User",
    "role_assistant": "Assistant",
    "image_removed": "Screenshot removed to save space",
    "screen_elements": "Screen elements",
    "capture_unavailable": "Screen capture unavailable: {reason}",
    "no_observation": "No screen data could be acquired",
    "model_error": "Model request failed: {error}",
    "max_steps_reached": "Max steps reached",
    "stopped": "Task stopped",
    "thinking": "Thinking",
    "action": "Action",
    "result": "Result",
    "task_completed": "Task completed",
    "step": "Step",
    "performance_metrics": "Performance Metrics",
    "time_to_first_token": "Time to first token",
    "total_inference_time": "Total inference time",
}


def get_messages(lang: str = "cn") -> dict:
    """
    Get the message table for a language.

    Args:
        lang: 'cn' for Chinese, 'en' for English. Unknown values fall back to Chinese.

    Returns:
        Dictionary of message templates.
    """
    if lang == "en":
        return MESSAGES_EN
    return MESSAGES_ZH


def get_message(key: str, lang: str = "cn", **params) -> str:
    """
    Get one message, formatted with ``params``.

    Args:
        key: Message key.
        lang: Language code.

    Returns:
        The formatted message, or the key itself when it is unknown.
    """
    template = get_messages(lang).get(key, key)
    if params:
        return template.format(**params)
    return template
